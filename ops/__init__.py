"""
Operational tooling behind the scripts: prerequisite checks, resource
bootstrapping, token issuance, AI smoke tests and end-to-end API checks.
"""
