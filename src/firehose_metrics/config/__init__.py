from .settings import DeliveryConfig, LoggingConfig, MetricSettings, load_settings

__all__ = ['DeliveryConfig', 'LoggingConfig', 'MetricSettings', 'load_settings']
