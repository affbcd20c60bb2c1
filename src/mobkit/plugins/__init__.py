"""Platform plugins for mobkit.

The set of platforms is closed: :data:`PLATFORMS` maps each command-line
name to its :class:`PlatformPlugin` instance. The CLI builds one Typer
sub-app per entry (see :func:`mobkit.plugins.cli.make_platform_app`).
"""

from mobkit.plugins.android import AndroidPlugin
from mobkit.plugins.base import PlatformPlugin
from mobkit.plugins.ios import IosPlugin

PLATFORMS: dict[str, PlatformPlugin] = {
    plugin.name: plugin for plugin in (AndroidPlugin(), IosPlugin())
}

__all__ = ["PLATFORMS", "PlatformPlugin"]
