"""Scholar Vault: research paper catalog with content-addressed storage and integrity proofs."""

__version__ = "0.1.0"
