"""Outbound integrations: GitLab merge-request notes and the secret inventory API.

Both are best-effort: failures are logged and reported as ``False``, never
raised into the scan run.
"""
