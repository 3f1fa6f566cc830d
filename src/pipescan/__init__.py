"""pipescan: CI security-scan orchestrator (Trivy, Gitleaks, cdxgen)."""

__version__ = "0.1.0"
