"""Approved template catalogue."""
from wappy.models.template import MarketingMessage, MarketingMessageText
from wappy.services.template_service import TemplateService


def add_template(db, uuid, template_name, status="Approved", image=None, texts=()):
    db.add(MarketingMessage(uuid=uuid, name=template_name.title(), template_name=template_name,
                            status=status, image=image, channel="whatsapp"))
    for language, body in texts:
        db.add(MarketingMessageText(message_uuid=uuid, language=language, body=body))
    db.commit()


def test_templates_grouped_by_language(monkeypatch, tenant_db):
    monkeypatch.setattr("wappy.core.config.MEDIA_BASE_URL", "https://media.example.com/wa")
    add_template(tenant_db, "u1", "benvenuto", texts=[("it", "Benvenuto {{1}}"), ("en", "Welcome {{1}}")])
    add_template(tenant_db, "u2", "arrivederci", texts=[("it", "Arrivederci")])
    add_template(tenant_db, "u3", "promo_estate", image="promo.jpg", texts=[("it", "Offerta")])
    add_template(tenant_db, "u4", "bozza", status="Pending", texts=[("it", "Non approvato")])

    grouped = TemplateService().list_templates(tenant_db, "spotty42")

    assert set(grouped) == {"it", "en"}
    assert [t.template_name for t in grouped["it"]] == ["arrivederci", "benvenuto", "promo_estate"]
    assert [t.template_name for t in grouped["en"]] == ["benvenuto"]

    promo = grouped["it"][2]
    assert promo.is_media_template
    assert promo.media_url == "https://media.example.com/wa/42/images/promo.jpg"
    assert promo.mime_type == "image/jpeg"
    assert not grouped["it"][0].is_media_template
    assert grouped["it"][0].media_url is None


def test_template_without_texts_is_listed_as_unknown(tenant_db):
    add_template(tenant_db, "u1", "solo_nome")

    grouped = TemplateService().list_templates(tenant_db, "spotty42")

    assert [t.template_name for t in grouped["unknown"]] == ["solo_nome"]
    assert grouped["unknown"][0].body is None


def test_get_template_by_language(tenant_db):
    add_template(tenant_db, "u1", "benvenuto", texts=[("it", "Benvenuto"), ("en", "Welcome")])
    service = TemplateService()

    assert service.get_template(tenant_db, "spotty42", "benvenuto", "en").body == "Welcome"
    assert service.get_template(tenant_db, "spotty42", "mancante") is None
