"""flagport: automated Statsig to LaunchDarkly SDK migration."""

__version__ = "0.1.0"
