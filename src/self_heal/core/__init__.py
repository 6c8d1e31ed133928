"""
Core module for the locator self-healing pipeline.

This module contains:
- config.py: Environment settings and configuration errors
- config_loader.py: YAML tuning file loader
- logging_config.py: Logging configuration
- models: Pipeline data models and the run report schema
"""

__all__ = ["config", "config_loader", "logging_config", "models"]
