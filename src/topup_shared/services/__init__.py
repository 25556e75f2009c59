"""Backend services for the top-up platform.

Modules are imported directly (e.g. ``topup_shared.services.dynamodb``) so that
configuration loading does not pull in every provider client.
"""
