"""Configuration adapters."""

from helpdesk_realtime.adapters.config.app_config import AppConfig
from helpdesk_realtime.adapters.config.roster_configuration_loader import (
    RosterConfigurationLoader,
)

__all__ = ["AppConfig", "RosterConfigurationLoader"]
