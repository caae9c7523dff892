"""
FeatureGate - feature flag evaluation core and SDK serving API.
"""

__version__ = "0.1.0"
