"""Turn finished raw captures into structured records and file them."""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from .dictionary import FieldDictionary
from .errors import ClassificationError

logger = logging.getLogger(__name__)


def identify_object_type(raw_fields: Mapping[str, Any], dictionary: FieldDictionary) -> str | None:
    """Get the type name whose unique headers appear in ``raw_fields``."""
    object_type: str | None = None
    for header in raw_fields:
        types = dictionary.types_for_header(header)
        if len(types) != 1:
            continue
        type_name = types[0]
        if object_type is None:
            object_type = type_name
        elif object_type != type_name:
            # Two headers unique to different types: either the dictionary is
            # wrong or the input is corrupt.
            raise ClassificationError(
                f"Object can have two or more types: {object_type} and {type_name} "
                f"due to header {header!r}"
            )
    return object_type


def cook_object(
    raw_fields: Mapping[str, Any],
    records: list[dict[str, Any]],
    dictionary: FieldDictionary,
) -> dict[str, Any] | None:
    """Build a record from ``raw_fields`` and place it in ``records``.

    Returns the record, or ``None`` when it belongs to an owner that is not in
    ``records`` and was discarded.
    """
    object_type = identify_object_type(raw_fields, dictionary)
    if object_type is None:
        raise ClassificationError(
            "Object could not be categorized: " + json.dumps(raw_fields, ensure_ascii=False)
        )

    result: dict[str, Any] = {}
    for header, value in raw_fields.items():
        dictionary.process(result, object_type, header, value)

    owner = dictionary.owner_of(object_type)
    if owner is None:
        logger.debug("Cooked top-level %s record", object_type)
        records.append(result)
        return result

    match_value = result.get(owner.match_on)
    owner_record = None
    if match_value is not None:
        owner_record = next(
            (record for record in records if record.get(owner.match_on) == match_value), None
        )
    if owner_record is None:
        logger.warning(
            "Can't find owner for %s %r - discarding %s data",
            owner.match_on,
            match_value,
            object_type,
        )
        return None
    owner_record.setdefault(owner.as_field, []).append(result)
    logger.debug("Nested %s record under %s=%r", object_type, owner.match_on, match_value)
    return result
