"""
Shared module package.

Cross-cutting concerns for every router: domain error mapping,
admin key checks, rate limiting, security headers and logging setup.
"""
