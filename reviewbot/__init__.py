"""Automated security and structure reviews for Node.js REST APIs."""

__version__ = "1.0.0"
