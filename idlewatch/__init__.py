# Find idle privileged shells, nag about them, and (for ordinary users) hang them up.

__version__ = '0.1.0'
