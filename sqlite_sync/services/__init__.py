"""Sync services: version math, upstream, registry, staging, manifest, docs."""
