"""iOS plugin -- cargo library builds, Xcode packaging, ``ios-deploy`` devices.

The main export is :class:`IosPlugin`, registered in
:data:`mobkit.plugins.PLATFORMS` and exposed as ``mobkit ios``.
"""

from mobkit.plugins.ios.plugin import IosPlugin

__all__ = ["IosPlugin"]
