# wappy/models/client.py
"""
Registry models: tenants (clients) and their per-tenant settings.
"""
from sqlalchemy import Column, Integer, String, Text
from wappy.models.base import RegistryBase


class Client(RegistryBase):
    """One row per tenant, with the credentials of its isolated database"""
    __tablename__ = "adm_Clienti"

    id = Column("Id", Integer, primary_key=True, autoincrement=True)
    code = Column("CodiceCliente", String(50), index=True, nullable=False)
    display_name = Column("NomeCliente", String(255), nullable=True)

    db_host = Column("HostDatabase", String(255), nullable=True)
    db_name = Column("NomeDatabase", String(255), nullable=True)
    db_user = Column("UtenteDatabase", String(255), nullable=True)
    db_password = Column("PasswordDatabase", String(255), nullable=True)

    group_label = Column("Gruppo", String(255), nullable=True)

    def __repr__(self):
        return f"<Client {self.code} group={self.group_label!r}>"


class ClientSetting(RegistryBase):
    """Key/value settings, e.g. the Kaleyra credentials of a tenant"""
    __tablename__ = "adm_Impostazioni"

    id = Column("Id", Integer, primary_key=True, autoincrement=True)
    tenant_code = Column("CodiceCliente", String(50), index=True, nullable=False)
    key = Column("Chiave", String(100), index=True, nullable=False)
    value = Column("Valore", Text, nullable=True)

    def __repr__(self):
        return f"<ClientSetting {self.tenant_code}:{self.key}>"
