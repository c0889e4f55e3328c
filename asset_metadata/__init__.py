"""
Asset Metadata Service

Namespaced JSON attributes for hardware inventory, with filtered listing and
transactional firmware set management.
"""

import importlib.metadata

__version__ = importlib.metadata.version("asset-metadata-service")
