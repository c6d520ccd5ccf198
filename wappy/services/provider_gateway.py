# wappy/services/provider_gateway.py
"""
Provider Gateway - outbound WhatsApp messages through Kaleyra.

Every send follows the same steps:
1. Load the tenant's Kaleyra credentials (nothing is sent when incomplete)
2. POST the form-encoded message to ``{api}/v1/{sid}/messages``
3. Record the attempt in the tenant's ``LogInvioWhatsApp`` table

The audit record is best-effort: once the provider has accepted a
message, a failure to record it is logged but never reported as a failed
send.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from wappy.core import config
from wappy.core.config_loader import ProviderConfigLoader, ProviderCredentials
from wappy.core.errors import InvalidRequest, ProviderRejected, ProviderUnavailable
from wappy.core.logging_config import get_provider_logger, log_api_request, log_api_response
from wappy.db.tenant import TenantConnectionFactory
from wappy.models.message import STATUS_FAILED, STATUS_PENDING, OutboundLog
from wappy.schemas.tenant import normalize_tenant_code
from wappy.services.chat_cache import TTLCache
from wappy.services.media import guess_mime_type
from wappy.services.session_window import db_timezone
from wappy.services.tenant_resolver import TenantResolver

log = logging.getLogger("wappy.provider_gateway")
provider_log = get_provider_logger()

CHANNEL = "whatsapp"

SEND_TYPE_CHAT = "chat"
SEND_TYPE_TEMPLATE = "template"
SEND_TYPE_TEMPLATE_MEDIA = "template_media"


@dataclass
class SendResult:
    """Outcome of a message accepted by the provider"""
    tenant_code: str
    to: str
    send_type: str
    message_id: Optional[str]
    audit_logged: bool
    status_code: int
    provider_response: Any = None


def extract_message_id(body: Any) -> Optional[str]:
    """Provider message id from a Kaleyra response (``id`` or ``data[0].message_id``)"""
    if not isinstance(body, dict):
        return None
    if body.get("id"):
        return str(body["id"])
    data = body.get("data")
    if isinstance(data, list) and data and isinstance(data[0], dict):
        message_id = data[0].get("message_id") or data[0].get("id")
        if message_id:
            return str(message_id)
    return None


def _response_body(response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class KaleyraGateway:
    """
    Sends free-form and template messages on behalf of a tenant.

    Usage:
        gateway = KaleyraGateway()
        result = gateway.send_template("spotty42", "393331234567", "benvenuto")
        result.message_id, result.audit_logged
    """

    def __init__(
        self,
        config_loader: Optional[ProviderConfigLoader] = None,
        resolver: Optional[TenantResolver] = None,
        connection_factory: Optional[TenantConnectionFactory] = None,
        http=None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        chat_cache: Optional[TTLCache] = None,
    ):
        self.config_loader = config_loader or ProviderConfigLoader()
        self.resolver = resolver or TenantResolver()
        self.connection_factory = connection_factory or TenantConnectionFactory()
        # module-level requests.post opens a fresh session per call
        self.http = http or requests
        self.base_url = (base_url or config.KALEYRA_API_BASE).rstrip("/")
        self.timeout = timeout or config.KALEYRA_TIMEOUT
        self.chat_cache = chat_cache

    # ────────────────────────────────────────────
    # Public API
    # ────────────────────────────────────────────

    def send_text(
        self,
        tenant_code: str,
        to: str,
        body: str,
        media_url: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> SendResult:
        """Free-form message, optionally with an attachment URL"""
        if not body or not body.strip():
            raise InvalidRequest("Message text is required")

        def build(creds: ProviderCredentials) -> Dict[str, str]:
            payload = {
                "to": to,
                "type": "text",
                "channel": CHANNEL,
                "from": creds.sender,
                "body": body,
            }
            if media_url:
                payload["media_url"] = media_url
                payload["content_type"] = mime_type or guess_mime_type(media_url)
            return payload

        return self._send(tenant_code, to, SEND_TYPE_CHAT, build, audit_text=body)

    def send_template(
        self,
        tenant_code: str,
        to: str,
        template_name: str,
        lang_code: Optional[str] = None,
        params: Optional[str] = None,
    ) -> SendResult:
        """Approved text template; allowed outside the session window"""
        if not template_name:
            raise InvalidRequest("template_name is required")

        def build(creds: ProviderCredentials) -> Dict[str, str]:
            payload = {
                "to": to,
                "type": "template",
                "channel": CHANNEL,
                "from": creds.sender,
                "template_name": template_name,
                "lang_code": lang_code or config.DEFAULT_TEMPLATE_LANGUAGE,
            }
            if creds.callback_url:
                payload["callback_url"] = creds.callback_url
            if params:
                payload["params"] = params
            return payload

        return self._send(
            tenant_code, to, SEND_TYPE_TEMPLATE, build,
            audit_text=params, template_name=template_name,
        )

    def send_media_template(
        self,
        tenant_code: str,
        to: str,
        template_name: str,
        media_url: str,
        lang_code: Optional[str] = None,
        caption: Optional[str] = None,
    ) -> SendResult:
        """Approved template with an image, video or document header"""
        if not template_name:
            raise InvalidRequest("template_name is required")
        if not media_url:
            raise InvalidRequest("media_url is required for media templates")

        def build(creds: ProviderCredentials) -> Dict[str, str]:
            payload = {
                "to": to,
                "type": "mediatemplate",
                "channel": CHANNEL,
                "from": creds.sender,
                "template_name": template_name,
                "media_url": media_url,
                "lang_code": lang_code or config.DEFAULT_TEMPLATE_LANGUAGE,
            }
            if creds.callback_url:
                payload["callback_url"] = creds.callback_url
            if caption:
                payload["caption"] = caption
            return payload

        return self._send(
            tenant_code, to, SEND_TYPE_TEMPLATE_MEDIA, build,
            audit_text=caption, template_name=template_name,
        )

    # ────────────────────────────────────────────
    # Internals
    # ────────────────────────────────────────────

    def _send(
        self,
        tenant_code: str,
        to: str,
        send_type: str,
        build_payload,
        audit_text: Optional[str] = None,
        template_name: Optional[str] = None,
    ) -> SendResult:
        code = normalize_tenant_code(tenant_code)
        if not to or not to.strip():
            raise InvalidRequest("Recipient number is required")

        creds = self.config_loader.load(code)
        payload = build_payload(creds)
        url = f"{self.base_url}/v1/{creds.sid}/messages"
        headers = {"api-key": creds.api_key}

        provider_log.info(f"📤 {send_type} to {to} for tenant {code}")
        log_api_request(provider_log, "POST", url, data=payload, headers=headers)

        try:
            response = self.http.post(url, data=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            log_api_response(provider_log, 0, None, error=e)
            raise ProviderUnavailable("The messaging provider could not be reached") from e

        body = _response_body(response)

        if not 200 <= response.status_code < 300:
            error = ProviderRejected(response.status_code, body)
            log_api_response(provider_log, response.status_code, body, error=error)
            self._write_audit(code, to, audit_text, None, send_type, template_name, STATUS_FAILED)
            raise error

        log_api_response(provider_log, response.status_code, body)
        message_id = extract_message_id(body)
        if message_id is None:
            provider_log.warning(f"⚠️ No message id in provider response for {send_type} to {to}")

        audit_logged = self._write_audit(
            code, to, audit_text, message_id, send_type, template_name, STATUS_PENDING
        )
        if self.chat_cache is not None:
            self.chat_cache.invalidate(code.lower())

        log.info(f"✅ {send_type} sent to {to} for {code} (id={message_id})")
        return SendResult(
            tenant_code=code,
            to=to,
            send_type=send_type,
            message_id=message_id,
            audit_logged=audit_logged,
            status_code=response.status_code,
            provider_response=body,
        )

    def _write_audit(
        self,
        tenant_code: str,
        to: str,
        text: Optional[str],
        message_id: Optional[str],
        send_type: str,
        template_name: Optional[str],
        status: str,
    ) -> bool:
        """Insert one LogInvioWhatsApp row; returns False instead of raising"""
        try:
            profile = self.resolver.resolve(tenant_code)
            with self.connection_factory.connect(profile) as db:
                db.add(OutboundLog(
                    sent_at=datetime.now(db_timezone()).replace(tzinfo=None),
                    tenant_code=tenant_code,
                    phone=to,
                    text=text,
                    provider_message_id=message_id,
                    send_type=send_type,
                    template_name=template_name,
                    status=status,
                ))
                db.commit()
        except Exception as e:
            log.error(f"❌ Could not record {send_type} to {to} for {tenant_code}: {type(e).__name__}: {e}")
            return False
        return True
