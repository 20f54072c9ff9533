"""FamilyHub: family coordination server and client synchronizer."""

__version__ = "0.1.0"
