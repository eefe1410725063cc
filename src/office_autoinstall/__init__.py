"""!
@brief Office Auto-Install package root.
@details Modules under this namespace elevate the process, resolve an ODT
configuration document, acquire and run the Office Deployment Tool, verify the
resulting installation, and tidy up afterwards.
"""

__all__ = [
    "main",
    "pipeline",
    "elevation",
    "odt_config",
    "odt_download",
    "odt_runner",
    "verify",
    "appx_uninstall",
    "registry_tools",
    "fs_tools",
    "exec_utils",
    "logging_ext",
    "constants",
    "errors",
    "version",
]
