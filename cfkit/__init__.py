"""Client for the Cloud Foundry v2 API: apps, app events, usage events and buildpacks."""

__version__ = "0.1.0"