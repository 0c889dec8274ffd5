from .firehose_client import FirehoseClientFactory

__all__ = ['FirehoseClientFactory']
