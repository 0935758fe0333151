"""
Retail signage CMS: publications, manifests, pairing and device heartbeats.
"""
