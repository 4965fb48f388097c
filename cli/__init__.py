"""Ad Sync command-line tools."""
