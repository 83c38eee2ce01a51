"""Draining of marker-paginated IAM listings.

IAM list calls return at most one page of results together with
``IsTruncated`` and a ``Marker``. The same request has to be reissued with
that marker until a page comes back without one. Pages are merged in the
order received; the provider owns ordering and uniqueness.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Sequence, TypeVar

if TYPE_CHECKING:
    from iamjack.aws.transport import AWSTransport

T = TypeVar("T")


def collect_all(page_fetcher: Callable[[str | None], tuple[Sequence[T], str | None]]) -> list[T]:
    """Call ``page_fetcher`` until it stops returning a cursor.

    The first call gets ``None``; every later call gets the cursor returned
    by the previous one. There is no page cap: a provider that never stops
    returning a cursor keeps this loop going.
    """
    items: list[T] = []
    cursor: str | None = None
    while True:
        page, cursor = page_fetcher(cursor)
        items.extend(page)
        if not cursor:
            return items


def marker_fetcher(
    transport: AWSTransport,
    operation: str,
    parameters: dict[str, Any],
    items_key: str,
) -> Callable[[str | None], tuple[list[Any], str | None]]:
    """Adapt an IAM ``Marker``/``IsTruncated`` listing to :func:`collect_all`.

    Args:
        transport: Transport that executes ``operation``.
        operation: API name, e.g. ``ListPolicies``.
        parameters: Request parameters, reused unchanged for every page.
        items_key: Response key holding the page items, e.g. ``Policies``.
    """

    def fetch(marker: str | None) -> tuple[list[Any], str | None]:
        params = dict(parameters)
        if marker:
            params["Marker"] = marker
        resp = transport.invoke(operation, params)
        next_marker = resp.get("Marker") if resp.get("IsTruncated") else None
        return list(resp.get(items_key, [])), next_marker

    return fetch


def drain(
    transport: AWSTransport,
    operation: str,
    parameters: dict[str, Any],
    items_key: str,
) -> list[Any]:
    """Shorthand for ``collect_all(marker_fetcher(...))``."""
    return collect_all(marker_fetcher(transport, operation, parameters, items_key))
