"""Connection scope shared by the domain services."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import asyncpg

from socialcore.domain.common.errors import InternalError
from socialcore.infra.postgres import get_pool


@asynccontextmanager
async def connection() -> AsyncIterator[asyncpg.Connection]:
	"""Acquire a pooled connection; driver failures surface as :class:`InternalError`."""
	pool = await get_pool()
	async with pool.acquire() as conn:
		try:
			yield conn
		except (asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
			raise InternalError("store_failure") from exc
