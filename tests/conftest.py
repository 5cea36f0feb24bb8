"""Shared fixtures: a representative content schema, metadata and settings."""

import itertools
from datetime import date

import pytest

from newsletter_studio.config import Settings
from newsletter_studio.converter import schema_to_document
from newsletter_studio.models import Metadata
from newsletter_studio.session import EditorSession


@pytest.fixture(name="config")
def fixture_config(tmp_path):
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        standard_title="INNOV'ACTU",
        radar_title="RADAR",
        newsletter_subtitle="Strategic Newsletter",
        editorial_author="The Editorial Team",
        organization_name="Acme Innovation",
        footer_address="1 Main Street",
        footer_email="news@example.com",
        output_dir=str(tmp_path / "out"),
        drag_threshold_px=8.0,
    )


@pytest.fixture(name="id_factory")
def fixture_id_factory():
    counter = itertools.count(1)
    return lambda: f"b{next(counter)}"


@pytest.fixture(name="metadata")
def fixture_metadata():
    return Metadata(
        document_id="doc-42",
        template_variant="standard",
        sequence_number=42,
        period_start=date(2024, 3, 4),
        period_end=date(2024, 3, 10),
    )


@pytest.fixture(name="schema")
def fixture_schema():
    return {
        "header": {"image_url": "https://cdn.example.com/header.png", "image_alt": "Skyline"},
        "edito": {"text": "This week we look at <b>data</b> & AI.", "ai_generated": True},
        "articles": [
            {
                "title": "Open data portal launched",
                "reason": "It centralises every public dataset",
                "impact": "Faster reporting for all teams",
                "source_id": "src-1",
            },
            {
                "title": "New AI guidelines",
                "reason": "Regulators published a first draft",
                "impact": "Review our pilots before June",
                "image_url": "https://cdn.example.com/ai.png",
                "image_alt": "Robot",
            },
        ],
        "tech_trend": {
            "title": "Small language models",
            "body": "They run on a laptop.\nNo cloud needed.",
            "institution_link": "Pilot one for the helpdesk",
        },
        "explainer": {"title": "What is RAG?", "body": "Retrieval augmented generation."},
        "highlighted_metric": {"value": "73", "unit": "%", "context": "of teams use AI weekly"},
        "calendar": [
            {"category": "event", "title": "AI Day", "date": "2024-04-02"},
            {"category": "decision", "title": "Budget vote"},
        ],
    }


@pytest.fixture(name="document")
def fixture_document(schema, metadata, config, id_factory):
    return schema_to_document(schema, metadata, config=config, id_factory=id_factory)


@pytest.fixture(name="session")
def fixture_session(document, config, id_factory):
    return EditorSession(document, config=config, id_factory=id_factory)
