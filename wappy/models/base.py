# wappy/models/base.py
"""
Declarative bases for the two kinds of databases the console talks to.

Both schemas are owned elsewhere (the registry by the administration
panel, tenant databases by the webhook pipeline), so these models only
describe the columns we read or write.
"""
from sqlalchemy.orm import declarative_base

# Central registry: tenants and their settings
RegistryBase = declarative_base()

# One isolated database per tenant: messages, send log, templates
TenantBase = declarative_base()
