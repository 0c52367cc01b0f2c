"""Offset pagination helpers for list endpoints."""

from __future__ import annotations

import math
from dataclasses import dataclass

from pydantic import BaseModel


class PageInfo(BaseModel):
	page: int
	limit: int
	total: int
	has_more: bool
	total_pages: int


@dataclass(frozen=True, slots=True)
class PageWindow:
	page: int
	limit: int

	@property
	def offset(self) -> int:
		return (self.page - 1) * self.limit

	def info(self, *, total: int, returned: int) -> PageInfo:
		return PageInfo(
			page=self.page,
			limit=self.limit,
			total=total,
			has_more=self.offset + returned < total,
			total_pages=math.ceil(total / self.limit) if self.limit else 0,
		)


def window(page: int | None, limit: int | None, *, default: int, maximum: int) -> PageWindow:
	"""Clamp a requested page/limit pair into a valid window."""
	page_value = max(1, int(page or 1))
	limit_value = int(limit or default)
	limit_value = max(1, min(limit_value, maximum))
	return PageWindow(page=page_value, limit=limit_value)
