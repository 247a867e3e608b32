"""
Answer merging: appends the record sections of partial responses to a target
response, in source order, without reordering or de-duplicating.
"""

from typing import Iterable, Iterator, Union

from .message import SECTIONS, Response

Source = Union[Response, Iterable[Response]]


def _flatten(sources: Iterable[Source]) -> Iterator[Response]:
    for source in sources:
        if isinstance(source, Response):
            yield source
        else:
            yield from source


def merge_answer(target: Response, *sources: Source) -> Response:
    for source in _flatten(sources):
        for section in SECTIONS:
            records = getattr(source, section, None)
            if records:
                getattr(target, section).extend(records)
    return target
