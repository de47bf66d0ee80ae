"""pixprint – perceptual image fingerprints and near-duplicate detection."""

__version__ = "0.3.0"
