"""Configuration module for the premium app wizard."""
from .settings import WizardConfig, load_settings

__all__ = ["WizardConfig", "load_settings"]
