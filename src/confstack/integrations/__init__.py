"""
Integrations with other configuration libraries.
"""

from confstack.integrations.pydantic_settings import ConfigSettingsSource

__all__ = ["ConfigSettingsSource"]
