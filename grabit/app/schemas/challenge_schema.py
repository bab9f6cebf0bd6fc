"""
schemas/challenge_schema.py — Marshmallow schemas for challenge and join endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim),
    page/size bounds.
  - services/challenge_service.py:
      - CHALLENGE_NOT_FOUND / USER_NOT_FOUND (require DB lookup)
      - leader authorization, ALREADY_MEMBER, JOIN_REQUEST_PENDING
      - SEARCH_FILTER_REQUIRED (the rule lives with the search itself)

IMPORTANT: Inherits from marshmallow.Schema directly so schemas can be
           instantiated in unit tests without a Flask application context.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate


def _validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    Mirrors the DB CHECK(LENGTH(TRIM(...)) > 0) constraint at the API layer.
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


_name_field_validators = [
    validate.Length(
        min=1,
        max=100,
        error="Challenge name must be between 1 and 100 characters.",
    ),
    _validate_non_empty_after_trim,
]


class CreateChallengeSchema(Schema):
    """POST /challenges"""

    name = fields.Str(required=True, validate=_name_field_validators)

    description = fields.Str(
        load_default="",
        validate=validate.Length(max=2000),
    )

    is_private = fields.Bool(load_default=False)


class UpdateChallengeSchema(Schema):
    """
    PATCH /challenges/:id

    name and description are optional; leader_user_id is always required
    (pass the current leader's id to keep leadership unchanged).
    """

    name = fields.Str(validate=_name_field_validators)

    description = fields.Str(validate=validate.Length(max=2000))

    leader_user_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="leader_user_id must be a positive integer."),
    )


class PageQuerySchema(Schema):
    """
    ?page=&size= for paged list endpoints. Pages are 0-based.
    size is optional here; the route falls back to DEFAULT_PAGE_SIZE and
    caps it at MAX_PAGE_SIZE from config.
    """

    class Meta:
        unknown = EXCLUDE

    page = fields.Int(
        load_default=0,
        validate=validate.Range(min=0, error="page must be 0 or greater."),
    )
    size = fields.Int(
        load_default=None,
        validate=validate.Range(min=1, error="size must be a positive integer."),
    )


class SearchChallengeSchema(PageQuerySchema):
    """GET /challenges?title=&description=&leader_id=&page=&size="""

    title = fields.Str(load_default=None)
    description = fields.Str(load_default=None)
    leader_id = fields.Int(
        load_default=None,
        validate=validate.Range(min=1, error="leader_id must be a positive integer."),
    )

    @post_load
    def _blank_filters_to_none(self, data: dict, **kwargs) -> dict:
        """`?title=` is the same as leaving the filter out."""
        for key in ("title", "description"):
            if data.get(key) is not None and not data[key].strip():
                data[key] = None
        return data
