from .settings_service import SRSSettingsService

__all__ = ['SRSSettingsService']
