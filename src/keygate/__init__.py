"""keygate - credential issuance, authorization and rate limiting for multi-tenant APIs."""

__version__ = "0.1.0"
