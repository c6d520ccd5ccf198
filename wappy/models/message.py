# wappy/models/message.py
"""
Tenant message tables.

Inbound and outbound messages live in different tables and are only
merged when a transcript is read.
"""
from sqlalchemy import Column, String, Text, Integer, DateTime
from wappy.models.base import TenantBase

STATUS_PENDING = "pending"
STATUS_FAILED = "failed"


class InboundMessage(TenantBase):
    """Messages received from contacts, stored by the webhook pipeline"""
    __tablename__ = "spottywa_risposte"

    id = Column(Integer, primary_key=True, autoincrement=True)
    mobile = Column(String(50), index=True, nullable=False)
    sender = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)  # provider JSON array
    media_url = Column(String(1024), nullable=True)
    mime_type = Column(String(100), nullable=True)
    created_at = Column(DateTime, index=True, nullable=True)

    def __repr__(self):
        return f"<InboundMessage {self.id} from {self.mobile}>"


class OutboundLog(TenantBase):
    """Audit trail of everything sent through the provider"""
    __tablename__ = "LogInvioWhatsApp"

    id = Column("Id", Integer, primary_key=True, autoincrement=True)
    sent_at = Column("Data", DateTime, index=True, nullable=True)
    tenant_code = Column("CodiceCliente", String(50), nullable=True)
    phone = Column("Telefono", String(50), index=True, nullable=False)
    text = Column("Messaggio", Text, nullable=True)
    provider_message_id = Column("MessageId", String(255), nullable=True)
    send_type = Column("TipoInvio", String(30), nullable=True)  # chat, template, template_media
    template_name = Column("NomeTemplate", String(255), nullable=True)
    # string statuses; legacy numeric Status columns must be widened to VARCHAR
    status = Column("Status", String(30), nullable=True)  # pending, failed, delivered, read

    def __repr__(self):
        return f"<OutboundLog {self.provider_message_id} to {self.phone} ({self.send_type})>"
