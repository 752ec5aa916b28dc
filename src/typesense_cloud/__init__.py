"""Typesense Cloud reconciler.

Reconcile declared Typesense Cloud clusters and their API keys against the
Typesense Cloud Management API.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
__license__ = "Apache-2.0"
