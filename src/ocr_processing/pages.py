"""
Page Selection
==============

Resolves which pages of a multi-page document to process.

Two modes, both 1-indexed:
- Range: start_page/end_page, inclusive, either bound optional (e.g. 3-5)
- Discrete: an explicit list of pages (e.g. 3, 8, 16)

Discrete mode always wins when its list is non-empty. Resolved pages are
0-indexed, sorted and free of duplicates. No selection means all pages.
"""

from dataclasses import dataclass, field

from ocr_processing.exceptions import PageSelectionError


@dataclass
class PageSelection:
    """Page selection for PDF extraction."""

    start_page: int | None = None
    end_page: int | None = None
    pages: list[int] = field(default_factory=list)

    @classmethod
    def from_fields(
        cls,
        start_page: int | None = None,
        end_page: int | None = None,
        pages: list[int] | None = None,
    ) -> "PageSelection | None":
        """Build a selection from loose request fields, None if nothing is selected."""
        if pages:
            return cls(pages=list(pages))
        if start_page is None and end_page is None:
            return None
        return cls(start_page=start_page, end_page=end_page)

    @property
    def is_discrete(self) -> bool:
        return bool(self.pages)

    @property
    def has_selection(self) -> bool:
        return self.is_discrete or self.start_page is not None or self.end_page is not None

    def validate(self, total_pages: int) -> None:
        """
        Validate the selection against the document's page count.

        Raises:
            PageSelectionError: if any referenced page is outside 1..total_pages,
                or the range is inverted
        """
        if self.is_discrete:
            for page in self.pages:
                if page < 1:
                    raise PageSelectionError(f"Page numbers must be >= 1, got: {page}")
                if page > total_pages:
                    raise PageSelectionError(
                        f"Page {page} exceeds total pages ({total_pages})"
                    )
            return

        start, end = self.start_page, self.end_page
        if start is not None and start < 1:
            raise PageSelectionError(f"start_page must be >= 1, got: {start}")
        if end is not None and end < 1:
            raise PageSelectionError(f"end_page must be >= 1, got: {end}")
        if start is not None and end is not None and start > end:
            raise PageSelectionError(
                f"start_page ({start}) must be <= end_page ({end})"
            )
        if start is not None and start > total_pages:
            raise PageSelectionError(
                f"start_page ({start}) exceeds total pages ({total_pages})"
            )
        if end is not None and end > total_pages:
            raise PageSelectionError(
                f"end_page ({end}) exceeds total pages ({total_pages})"
            )

    def effective_pages(self, total_pages: int) -> list[int]:
        """Return the 0-indexed pages to process, sorted and deduplicated."""
        if self.is_discrete:
            return sorted({page - 1 for page in self.pages})

        start = (self.start_page if self.start_page is not None else 1) - 1
        end = self.end_page if self.end_page is not None else total_pages
        return list(range(start, end))


def validate_selection(selection: PageSelection | None, total_pages: int) -> None:
    """Validate an optional selection; an absent selection is always valid."""
    if selection is not None and selection.has_selection:
        selection.validate(total_pages)


def resolve_pages(selection: PageSelection | None, total_pages: int) -> list[int]:
    """
    Resolve a selection to 0-indexed page numbers.

    Args:
        selection: Page selection, or None for all pages
        total_pages: Number of pages in the document

    Returns:
        Sorted, duplicate-free list of 0-indexed pages
    """
    if selection is None or not selection.has_selection:
        return list(range(total_pages))
    return selection.effective_pages(total_pages)
