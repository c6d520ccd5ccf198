# wappy/services/__init__.py
"""
Service layer initialization.
Provides singleton instances of services.
"""
from typing import Optional

from wappy.core import config
from wappy.core.config_loader import ProviderConfigLoader
from wappy.db.tenant import TenantConnectionFactory
from wappy.services.chat_cache import TTLCache
from wappy.services.chat_service import ChatService
from wappy.services.provider_gateway import KaleyraGateway
from wappy.services.template_service import TemplateService
from wappy.services.tenant_resolver import TenantResolver

_resolver: Optional[TenantResolver] = None
_connection_factory: Optional[TenantConnectionFactory] = None
_config_loader: Optional[ProviderConfigLoader] = None
_chat_cache: Optional[TTLCache] = None
_gateway: Optional[KaleyraGateway] = None


def get_tenant_resolver() -> TenantResolver:
    global _resolver
    if _resolver is None:
        _resolver = TenantResolver()
    return _resolver


def get_connection_factory() -> TenantConnectionFactory:
    global _connection_factory
    if _connection_factory is None:
        _connection_factory = TenantConnectionFactory()
    return _connection_factory


def get_config_loader() -> ProviderConfigLoader:
    global _config_loader
    if _config_loader is None:
        _config_loader = ProviderConfigLoader()
    return _config_loader


def get_chat_cache() -> TTLCache:
    """Chat list cache shared by readers and the gateway"""
    global _chat_cache
    if _chat_cache is None:
        _chat_cache = TTLCache(config.CHAT_LIST_CACHE_TTL)
    return _chat_cache


def get_chat_service() -> ChatService:
    return ChatService(get_chat_cache())


def get_template_service() -> TemplateService:
    return TemplateService()


def get_provider_gateway() -> KaleyraGateway:
    """Gateway wired to the shared resolver, connection factory and cache"""
    global _gateway
    if _gateway is None:
        _gateway = KaleyraGateway(
            config_loader=get_config_loader(),
            resolver=get_tenant_resolver(),
            connection_factory=get_connection_factory(),
            chat_cache=get_chat_cache(),
        )
    return _gateway


__all__ = [
    'ChatService',
    'KaleyraGateway',
    'TemplateService',
    'TenantResolver',
    'get_tenant_resolver',
    'get_connection_factory',
    'get_config_loader',
    'get_chat_cache',
    'get_chat_service',
    'get_template_service',
    'get_provider_gateway',
]
