"""Identity and verifiable-credential signing core backed by a custodial KMS."""

__version__ = "0.1.0"
