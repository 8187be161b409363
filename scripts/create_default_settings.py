#!/usr/bin/env python3
"""
Initialize default settings in the database.
This script creates the model and temperature settings read by ModelSettings.
"""

import json
import os
import sys

# Add the parent directory to sys.path to import storyline modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.exc import IntegrityError  # noqa: E402

from storyline.database import SessionLocal  # noqa: E402
from storyline.models.models import Setting  # noqa: E402
from storyline.utils.constants import SettingKeys  # noqa: E402

MODEL_OPTIONS = json.dumps(["gpt-4o-mini", "grok-3-latest", "gpt-4o", "o3"])


def _model_setting(key: SettingKeys, title: str, section: str, description: str) -> dict:
    return {
        "key": key.value,
        "title": title,
        "section": section,
        "value": "gpt-4o-mini",
        "description": description,
        "type": "list",
        "options": MODEL_OPTIONS,
    }


def _temperature_setting(key: SettingKeys, title: str, section: str, value: str) -> dict:
    return {
        "key": key.value,
        "title": title,
        "section": section,
        "value": value,
        "description": f"Temperature parameter for {section.lower()} generation",
        "type": "string",
        "options": None,
    }


DEFAULT_SETTINGS = [
    _model_setting(
        SettingKeys.CHAPTER_GENERATION_MODEL, "Chapter AI Model", "Chapter", "AI model used for writing chapter prose"
    ),
    _temperature_setting(SettingKeys.CHAPTER_GENERATION_TEMPERATURE, "Chapter Temperature", "Chapter", "0.8"),
    _model_setting(
        SettingKeys.CONTINUITY_EXTRACTION_MODEL,
        "Continuity AI Model",
        "Continuity",
        "AI model used for extracting continuity records from finished chapters",
    ),
    _temperature_setting(SettingKeys.CONTINUITY_EXTRACTION_TEMPERATURE, "Continuity Temperature", "Continuity", "0.2"),
    _model_setting(
        SettingKeys.BIBLE_GENERATION_MODEL, "Story Bible AI Model", "Bible", "AI model used by the setup assistant"
    ),
    _temperature_setting(SettingKeys.BIBLE_GENERATION_TEMPERATURE, "Story Bible Temperature", "Bible", "0.9"),
]


def create_default_settings():
    """Create default settings for the application."""
    db = SessionLocal()
    created_count = 0

    for setting_data in DEFAULT_SETTINGS:
        try:
            existing = db.query(Setting).filter(Setting.key == setting_data["key"]).first()

            if not existing:
                db.add(Setting(**setting_data))
                db.commit()
                created_count += 1
                print(f"Created setting: {setting_data['key']}")
                continue

            # Refresh metadata but preserve the existing value
            changes_made = False
            for field in ["title", "section", "description", "type", "options"]:
                if getattr(existing, field) != setting_data[field]:
                    setattr(existing, field, setting_data[field])
                    changes_made = True

            if changes_made:
                db.commit()
                print(f"Updated metadata for setting: {setting_data['key']}")
            else:
                print(f"Setting already exists (no changes needed): {setting_data['key']}")
        except IntegrityError as e:
            db.rollback()
            print(f"Error creating setting: {setting_data['key']} - {e}")

    print(f"Created {created_count} settings")
    db.close()


if __name__ == "__main__":
    create_default_settings()
