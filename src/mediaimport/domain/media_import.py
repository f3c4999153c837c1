"""
Import descriptors.

A ``MediaImport`` pairs one external source with an ordered group of media
types. It is loaded once per synchronisation request; the engine only reads
it, except for updating ``last_synced`` when a run commits.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..infra.exceptions import SettingTypeError
from ..shared.types import (
    GroupedMediaTypes,
    MediaImportTrigger,
    MediaType,
    media_types_to_string,
)


@dataclass
class MediaImportSource:
    """The external provider an import pulls items from."""

    identifier: str
    friendly_name: str = ""
    importer_id: str = ""
    last_synced: datetime | None = None
    active: bool = True
    ready: bool = True

    def is_valid(self) -> bool:
        return bool(self.identifier)


class MediaImportSettings:
    """
    Flat map of named import options with type-checked accessors.

    Every option is declared with its type and default. Reading or writing an
    option with the wrong type raises ``SettingTypeError``; unknown options
    raise ``KeyError``.
    """

    SETTING_TRIGGER = "import.trigger"
    SETTING_UPDATE_ITEMS = "import.updateimporteditems"
    SETTING_UPDATE_PLAYBACK_FROM_SOURCE = "import.updateplaybackmetadatafromsource"
    SETTING_UPDATE_PLAYBACK_ON_SOURCE = "import.updateplaybackmetadataonsource"

    DEFINITIONS: dict[str, tuple[type, Any]] = {
        SETTING_TRIGGER: (str, MediaImportTrigger.AUTO.value),
        SETTING_UPDATE_ITEMS: (bool, True),
        SETTING_UPDATE_PLAYBACK_FROM_SOURCE: (bool, True),
        SETTING_UPDATE_PLAYBACK_ON_SOURCE: (bool, True),
    }

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = {
            key: default for key, (_, default) in self.DEFINITIONS.items()
        }
        for key, value in (values or {}).items():
            self._set(key, value)

    def _definition(self, key: str) -> tuple[type, Any]:
        try:
            return self.DEFINITIONS[key]
        except KeyError:
            raise KeyError(f"Unknown import setting: {key}") from None

    def _get(self, key: str, expected: type) -> Any:
        setting_type, _ = self._definition(key)
        if setting_type is not expected:
            raise SettingTypeError(
                f"Setting '{key}' is of type {setting_type.__name__}, not {expected.__name__}"
            )
        return self._values[key]

    def _set(self, key: str, value: Any) -> None:
        setting_type, _ = self._definition(key)
        # bool is a subclass of int, so compare types exactly
        if type(value) is not setting_type:
            raise SettingTypeError(
                f"Setting '{key}' expects {setting_type.__name__}, got {type(value).__name__}"
            )
        self._values[key] = value

    def get_bool(self, key: str) -> bool:
        return self._get(key, bool)

    def set_bool(self, key: str, value: bool) -> None:
        self._set(key, value)

    def get_string(self, key: str) -> str:
        return self._get(key, str)

    def set_string(self, key: str, value: str) -> None:
        self._set(key, value)

    @property
    def import_trigger(self) -> MediaImportTrigger:
        return MediaImportTrigger(self.get_string(self.SETTING_TRIGGER))

    @import_trigger.setter
    def import_trigger(self, trigger: MediaImportTrigger) -> None:
        self.set_string(self.SETTING_TRIGGER, MediaImportTrigger(trigger).value)

    @property
    def update_imported_media_items(self) -> bool:
        return self.get_bool(self.SETTING_UPDATE_ITEMS)

    @update_imported_media_items.setter
    def update_imported_media_items(self, value: bool) -> None:
        self.set_bool(self.SETTING_UPDATE_ITEMS, value)

    @property
    def update_playback_metadata_from_source(self) -> bool:
        return self.get_bool(self.SETTING_UPDATE_PLAYBACK_FROM_SOURCE)

    @update_playback_metadata_from_source.setter
    def update_playback_metadata_from_source(self, value: bool) -> None:
        self.set_bool(self.SETTING_UPDATE_PLAYBACK_FROM_SOURCE, value)

    @property
    def update_playback_metadata_on_source(self) -> bool:
        return self.get_bool(self.SETTING_UPDATE_PLAYBACK_ON_SOURCE)

    @update_playback_metadata_on_source.setter
    def update_playback_metadata_on_source(self, value: bool) -> None:
        self.set_bool(self.SETTING_UPDATE_PLAYBACK_ON_SOURCE, value)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def to_json(self) -> str:
        return json.dumps(self._values, sort_keys=True)

    @classmethod
    def from_json(cls, value: str | None) -> MediaImportSettings:
        if not value:
            return cls()
        return cls(json.loads(value))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MediaImportSettings):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"<MediaImportSettings({self._values})>"


@dataclass
class MediaImport:
    """One configured pairing of a source and a group of media types."""

    media_types: GroupedMediaTypes
    source: MediaImportSource
    last_synced: datetime | None = None
    settings: MediaImportSettings = field(default_factory=MediaImportSettings)

    def __post_init__(self) -> None:
        self.media_types = tuple(MediaType(media_type) for media_type in self.media_types)

    @property
    def source_identifier(self) -> str:
        return self.source.identifier

    def is_valid(self) -> bool:
        return bool(self.media_types) and self.source.is_valid()

    def contains_media_type(self, media_type: MediaType) -> bool:
        return MediaType(media_type) in self.media_types

    @property
    def media_types_as_string(self) -> str:
        return media_types_to_string(self.media_types)

    def set_last_synced(self, last_synced: datetime) -> None:
        self.last_synced = last_synced
        self.source.last_synced = last_synced

    def clone(self) -> MediaImport:
        return copy.deepcopy(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MediaImport):
            return NotImplemented
        return (
            self.source_identifier == other.source_identifier
            and self.media_types == other.media_types
        )

    def __hash__(self) -> int:
        return hash((self.source_identifier, self.media_types))

    def __str__(self) -> str:
        return f"{self.source.friendly_name or self.source_identifier} ({self.media_types_as_string})"
