# wappy/api/v1/templates.py
"""
Template API endpoints.
Lists the approved templates of a tenant and sends them.

Template sends are allowed regardless of the session window.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from wappy.api.deps import open_tenant_session, require_tenant_code, tenant_session
from wappy.core.errors import InvalidRequest
from wappy.core.logging_config import get_provider_logger
from wappy.db.tenant import TenantConnectionFactory
from wappy.schemas.message import MessageSendResponse
from wappy.schemas.template import (
    MediaTemplateSendRequest, TemplateListResponse, TemplateResponse, TemplateSendRequest
)
from wappy.services import (
    get_connection_factory, get_provider_gateway, get_template_service, get_tenant_resolver
)
from wappy.services.media import build_media_url
from wappy.services.provider_gateway import KaleyraGateway
from wappy.services.template_service import TemplateService
from wappy.services.tenant_resolver import TenantResolver

router = APIRouter()
template_log = get_provider_logger()


@router.get("", response_model=TemplateListResponse)
def list_templates(
    tenant_code: str = Depends(require_tenant_code),
    db: Session = Depends(tenant_session),
    service: TemplateService = Depends(get_template_service)
):
    """Approved templates grouped by language"""
    grouped = service.list_templates(db, tenant_code)
    return TemplateListResponse(
        tenant_code=tenant_code,
        total=sum(len(entries) for entries in grouped.values()),
        languages={
            language: [TemplateResponse.from_record(e) for e in entries]
            for language, entries in grouped.items()
        },
    )


@router.post("/send", response_model=MessageSendResponse)
def send_template(
    data: TemplateSendRequest,
    gateway: KaleyraGateway = Depends(get_provider_gateway)
):
    """Send a text template (lang_code defaults to 'it')"""
    result = gateway.send_template(
        data.tenant_code, data.to, data.template_name,
        lang_code=data.lang_code, params=data.params,
    )
    return MessageSendResponse.from_result(result)


@router.post("/send-media", response_model=MessageSendResponse)
def send_media_template(
    data: MediaTemplateSendRequest,
    resolver: TenantResolver = Depends(get_tenant_resolver),
    factory: TenantConnectionFactory = Depends(get_connection_factory),
    service: TemplateService = Depends(get_template_service),
    gateway: KaleyraGateway = Depends(get_provider_gateway)
):
    """
    Send a media template.

    ``media_filename`` is resolved to the tenant's public media folder when
    no explicit ``media_url`` is given; with neither, the template's own
    image is used.
    """
    if data.media_url:
        media_url = data.media_url
    elif data.media_filename:
        media_url = build_media_url(data.tenant_code, data.media_filename)
    else:
        with open_tenant_session(data.tenant_code, resolver, factory) as db:
            template = service.get_template(db, data.tenant_code, data.template_name, data.lang_code)
        if template is None or not template.media_url:
            raise InvalidRequest(
                f"No media for template '{data.template_name}'; provide media_url or media_filename"
            )
        media_url = template.media_url
    template_log.debug(f"Media template {data.template_name} with {media_url}")

    result = gateway.send_media_template(
        data.tenant_code, data.to, data.template_name, media_url,
        lang_code=data.lang_code, caption=data.caption,
    )
    return MessageSendResponse.from_result(result)
