from logarchiver.clients.aws import CloudWatchExportService, TaggingDiscovery

__all__ = ["CloudWatchExportService", "TaggingDiscovery"]
