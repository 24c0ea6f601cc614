"""Teleform: Terraform generation from forms and from live Azure resources."""

__version__ = "1.0.0"
