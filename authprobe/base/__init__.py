"""Foundational pieces shared by every other authprobe package."""
#
# WHAT'S IN THIS MODULE:
# - config.py: Dataclass configuration, environment loading, logging setup
# - arn.py: ARN parsing, endpoints, nonexistent-target generation
#
