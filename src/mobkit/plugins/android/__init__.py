"""Android plugin -- cargo + NDK library builds, Gradle packaging, ``adb`` devices.

The main export is :class:`AndroidPlugin`, registered in
:data:`mobkit.plugins.PLATFORMS` and exposed as ``mobkit android``.
"""

from mobkit.plugins.android.plugin import AndroidPlugin

__all__ = ["AndroidPlugin"]
