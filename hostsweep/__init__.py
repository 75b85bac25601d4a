"""hostsweep — package-manager aware host maintenance."""

__version__ = "0.1.0"
