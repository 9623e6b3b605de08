"""Configuration package for harness settings and scenario variables."""

from .scenario import ScenarioConfig, config_resource_tags
from .settings import HarnessSettings, IntegrationInputsMissingError, SettingsLoadError, config_load_settings

__all__ = [
	"HarnessSettings",
	"IntegrationInputsMissingError",
	"ScenarioConfig",
	"SettingsLoadError",
	"config_load_settings",
	"config_resource_tags",
]
