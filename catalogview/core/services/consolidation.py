"""Variant consolidation: one canonical model per base slug."""

from __future__ import annotations

from collections.abc import Iterable, Sequence  # noqa: TC003

from catalogview.core.models.entities import CanonicalModel, ModelVariantRecord


def _dedupe(tags: Iterable[str | None]) -> list[str]:
    seen: dict[str, None] = {}
    for tag in tags:
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


def consolidate_variants(records: Sequence[ModelVariantRecord]) -> list[CanonicalModel]:
    """Group per-variant listings by base slug and pick the shortest name as base.

    Suffixes such as ``(free)`` lengthen variant names, so the shortest display
    name is the canonical base; ties keep input order. ``variants`` lists the
    base's tag first, then sibling tags, deduplicated with empty tags dropped.
    Output follows the first appearance of each base slug.
    """

    groups: dict[str, list[ModelVariantRecord]] = {}
    for record in records:
        groups.setdefault(record.base_slug, []).append(record)

    consolidated: list[CanonicalModel] = []
    for base_slug, members in groups.items():
        ordered = sorted(members, key=lambda member: len(member.name))
        base = ordered[0]
        consolidated.append(
            CanonicalModel(
                slug=base_slug,
                base_slug=base_slug,
                version_slug=base.version_slug,
                name=base.name,
                author_slug=base.author_slug,
                author_name=base.author_name,
                variants=_dedupe(member.variant for member in ordered),
                input_modalities=base.input_modalities,
                output_modalities=base.output_modalities,
                context_length=base.context_length,
                reasoning=base.reasoning,
                tokenizer=base.tokenizer,
                instruct_type=base.instruct_type,
                hugging_face_id=base.hugging_face_id,
                warning_message=base.warning_message,
                created_at=base.created_at,
            )
        )
    return consolidated


__all__ = ["consolidate_variants"]
