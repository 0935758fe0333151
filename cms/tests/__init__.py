"""
CMS Test Package.

Tests for pairing, publication and resolution, manifest delivery, heartbeats,
signed media URLs and the SQLite upgrade script.
"""
