"""Standalone SQLite upgrade scripts for existing CMS databases."""
