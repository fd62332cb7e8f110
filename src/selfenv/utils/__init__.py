"""Download, checksum, archive and process helpers."""
