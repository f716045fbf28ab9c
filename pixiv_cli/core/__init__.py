"""
Core application engine for resolving artworks and orchestrating downloads.

The `DownloadManager` acts as the high-level session coordinator. For each
artwork it asks the `MetadataResolver` for metadata, applies the range
selection, and hands the selected assets to the `DownloadOrchestrator`,
which delegates each individual asset to the `AssetProcessor`.
"""
