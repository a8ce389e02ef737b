"""Academy Billing package.

This package is organized by feature modules (classes, packages, allocation,
billing, ...) with a thin CLI layer on top of service/repository layers.
"""
