"""HTTP surface for the top-up backend: pages, auth, balance and webhooks."""
