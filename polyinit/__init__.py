"""polyinit - run one program as a native service on any Linux init system."""

__version__ = "0.1.0"
__logo__ = "⚙️"
