"""QuickOrder - catalog mirror and sync service for the DistriNaranjos storefronts."""

__version__ = "0.1.0"
