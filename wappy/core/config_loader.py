# wappy/core/config_loader.py
"""
Per-tenant Kaleyra configuration loader.
Reads the provider credentials of a tenant from the registry settings table.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from wappy.core import config
from wappy.core.errors import ProviderConfigIncomplete, RegistryUnavailable
from wappy.core.logging_config import get_provider_logger
from wappy.db.registry import RegistrySessionFactory, get_registry_session_factory
from wappy.models.client import ClientSetting
from wappy.schemas.tenant import normalize_tenant_code

log = logging.getLogger("wappy.config_loader")
provider_log = get_provider_logger()

KEY_SID = "wa_kaleyra_sid"
KEY_API_KEY = "wa_kaleyra_apikey"
KEY_WABA_ID = "wa_kaleyra_wabaid"
KEY_SENDER = "wa_kaleyra_numero_telefono"
KEY_CALLBACK_URL = "wa_kaleyra_url_calback"

REQUIRED_KEYS = (KEY_SID, KEY_API_KEY, KEY_SENDER)
OPTIONAL_KEYS = (KEY_WABA_ID, KEY_CALLBACK_URL)


@dataclass(frozen=True)
class ProviderCredentials:
    """Kaleyra credentials of one tenant"""
    tenant_code: str
    sid: str
    api_key: str = field(repr=False)
    sender: str
    waba_id: Optional[str] = None
    callback_url: Optional[str] = None


class ProviderConfigLoader:
    """
    Loads Kaleyra credentials from ``adm_Impostazioni``.

    Usage:
        loader = ProviderConfigLoader()
        creds = loader.load("spotty42")
        creds.sid, creds.sender
    """

    def __init__(self, session_factory: Optional[RegistrySessionFactory] = None):
        self._session_factory = session_factory

    @property
    def session_factory(self) -> RegistrySessionFactory:
        if self._session_factory is None:
            self._session_factory = get_registry_session_factory()
        return self._session_factory

    def _fetch_settings(self, tenant_code: str) -> Dict[str, str]:
        db = None
        try:
            db = self.session_factory()
            rows = db.execute(
                select(ClientSetting.key, ClientSetting.value).where(
                    func.lower(ClientSetting.tenant_code) == tenant_code.lower(),
                    ClientSetting.key.in_(REQUIRED_KEYS + OPTIONAL_KEYS),
                )
            ).all()
        except SQLAlchemyError as e:
            log.error(f"❌ Settings lookup failed for tenant={tenant_code}: {type(e).__name__}")
            raise RegistryUnavailable("Tenant registry is not reachable") from e
        finally:
            if db is not None:
                db.close()
        return {key: (value or "").strip() for key, value in rows}

    def load(self, tenant_code: Optional[str]) -> ProviderCredentials:
        """
        Load and validate the credentials of a tenant.

        Raises:
            InvalidRequest: tenant_code is blank
            ProviderConfigIncomplete: one or more required keys are missing
            RegistryUnavailable: the registry could not be queried
        """
        code = normalize_tenant_code(tenant_code)
        settings = self._fetch_settings(code)

        missing = [key for key in REQUIRED_KEYS if not settings.get(key)]
        if missing:
            provider_log.error(f"Missing provider keys {', '.join(missing)} for tenant {code}")
            raise ProviderConfigIncomplete(code, missing)

        return ProviderCredentials(
            tenant_code=code,
            sid=settings[KEY_SID],
            api_key=settings[KEY_API_KEY],
            sender=settings[KEY_SENDER],
            waba_id=settings.get(KEY_WABA_ID) or None,
            callback_url=settings.get(KEY_CALLBACK_URL) or config.KALEYRA_CALLBACK_URL or None,
        )

    def configured_keys(self, tenant_code: Optional[str]) -> Dict[str, bool]:
        """Which provider keys are set for a tenant (values are never returned)"""
        settings = self._fetch_settings(normalize_tenant_code(tenant_code))
        return {key: bool(settings.get(key)) for key in REQUIRED_KEYS + OPTIONAL_KEYS}
