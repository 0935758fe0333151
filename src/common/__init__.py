"""
Shared player-side modules: CMS HTTP client, configuration, device identity
and logging.
"""
