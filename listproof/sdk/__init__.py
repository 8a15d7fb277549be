"""SDK for DID creation and credential issuance with remote signing."""
