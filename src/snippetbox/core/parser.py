"""Route pattern parser.

Converts route patterns into FastAPI path strings:
- snippet -> snippet (static segment)
- :id -> {id} (named parameter, exactly one non-empty segment)
"""

import re
from dataclasses import dataclass
from enum import Enum

from snippetbox.exceptions import PatternParseError


class SegmentType(Enum):
    """Type of a URL path segment."""

    STATIC = "static"
    PARAMETER = "parameter"


@dataclass(frozen=True)
class PathSegment:
    """A parsed URL path segment with type and name."""

    name: str
    segment_type: SegmentType
    original: str

    @property
    def is_parameter(self) -> bool:
        """Check if this segment represents a path parameter."""
        return self.segment_type is SegmentType.PARAMETER

    def to_fastapi_segment(self) -> str:
        """Convert this segment to FastAPI path syntax.

        Examples:
            STATIC "snippet" -> "snippet"
            PARAMETER "id" -> "{id}"
        """
        match self.segment_type:
            case SegmentType.STATIC:
                return self.name
            case SegmentType.PARAMETER:
                return f"{{{self.name}}}"


_PARAMETER_PATTERN = re.compile(r"^:([a-z_][a-z0-9_]*)$")
_STATIC_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_.-]*$")


def parse_path_segment(segment: str) -> PathSegment:
    """Parse a single pattern segment into a PathSegment.

    Args:
        segment: One slash-separated piece of a route pattern.

    Returns:
        PathSegment with detected type and extracted name.

    Raises:
        PatternParseError: If segment has invalid syntax.

    Examples:
        "snippet" -> PathSegment(name="snippet", segment_type=STATIC, ...)
        ":id" -> PathSegment(name="id", segment_type=PARAMETER, ...)
    """
    if not segment:
        raise PatternParseError("Empty segment")

    if match := _PARAMETER_PATTERN.match(segment):
        return PathSegment(
            name=match.group(1),
            segment_type=SegmentType.PARAMETER,
            original=segment,
        )

    if _STATIC_PATTERN.match(segment):
        return PathSegment(
            name=segment,
            segment_type=SegmentType.STATIC,
            original=segment,
        )

    raise PatternParseError(
        f"Invalid path segment '{segment}'. Use :param or lowercase-with-dashes."
    )


def parse_pattern(pattern: str) -> list[PathSegment]:
    """Parse a route pattern into PathSegments.

    Args:
        pattern: Route pattern such as "/snippet/:id". "/" is the root.

    Returns:
        List of parsed PathSegment objects (empty for the root pattern).

    Raises:
        PatternParseError: If the pattern lacks a leading slash, ends with
            a trailing slash, contains an empty segment, or repeats a
            parameter name.

    Examples:
        "/" -> []
        "/snippet/:id" -> [PathSegment(STATIC, "snippet"), PathSegment(PARAMETER, "id")]
    """
    if not pattern.startswith("/"):
        raise PatternParseError(f"Pattern '{pattern}' must start with '/'")

    if pattern == "/":
        return []

    if pattern.endswith("/"):
        raise PatternParseError(f"Pattern '{pattern}' must not end with '/'")

    segments = []
    seen_params: set[str] = set()

    for part in pattern[1:].split("/"):
        try:
            segment = parse_path_segment(part)
        except PatternParseError as exc:
            raise PatternParseError(f"{exc} (in pattern '{pattern}')") from exc

        if segment.is_parameter:
            if segment.name in seen_params:
                raise PatternParseError(
                    f"Duplicate parameter ':{segment.name}' in pattern '{pattern}'"
                )
            seen_params.add(segment.name)

        segments.append(segment)

    return segments


def segments_to_fastapi_path(segments: list[PathSegment]) -> str:
    """Convert PathSegments to a FastAPI path string.

    Examples:
        [STATIC("snippet")] -> "/snippet"
        [STATIC("snippet"), PARAMETER("id")] -> "/snippet/{id}"
        [] -> "/"
    """
    parts = [segment.to_fastapi_segment() for segment in segments]
    return "/" + "/".join(parts) if parts else "/"
