"""Settings package.

`base.py` holds configuration shared across environments; `dev.py`,
`test.py` and `prod.py` extend it with environment specific overrides.
"""
