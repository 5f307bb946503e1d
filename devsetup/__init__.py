"""devsetup — concurrent, OS-aware developer workstation provisioning."""

__version__ = "0.4.0"
