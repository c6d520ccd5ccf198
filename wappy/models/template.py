# wappy/models/template.py
"""
Template catalogue of a tenant: one message row plus one text row per language.
"""
from sqlalchemy import Column, String, Text, DateTime, Integer
from wappy.models.base import TenantBase

APPROVED_STATUS = "Approved"


class MarketingMessage(TenantBase):
    """A template registered with the provider"""
    __tablename__ = "spottymkt_messaggi"

    uuid = Column("Uuid", String(36), primary_key=True)
    name = Column("Nome", String(255), nullable=True)
    template_name = Column("NomeTemplate", String(255), index=True, nullable=False)
    channel = Column("Canale", String(50), nullable=True)
    sender_name = Column("NomeMittente", String(255), nullable=True)
    image = Column("Immagine", String(512), nullable=True)  # stored filename, media templates only
    status = Column("Status", String(30), nullable=True)
    created_at = Column("DataCreazione", DateTime, nullable=True)
    updated_at = Column("DataModifica", DateTime, nullable=True)

    def __repr__(self):
        return f"<MarketingMessage {self.template_name} - {self.status}>"


class MarketingMessageText(TenantBase):
    """Localised body of a template"""
    __tablename__ = "spottymkt_messaggi_testo"

    id = Column("Id", Integer, primary_key=True, autoincrement=True)
    message_uuid = Column("UuidMessaggio", String(36), index=True, nullable=False)
    language = Column("Lingua", String(10), nullable=True)
    body = Column("CorpoMessaggio", Text, nullable=True)
    subject = Column("Oggetto", String(255), nullable=True)
