"""FastAPI application wiring for the social core service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from socialcore.api import feed, notifications, ops, social
from socialcore.api.errors import install_error_handlers
from socialcore.infra import postgres
from socialcore.infra.scheduler import JobScheduler
from socialcore.jobs.boost_expiry import BoostExpiryJob
from socialcore.obs import init as obs_init
from socialcore.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	scheduler: JobScheduler | None = None
	if settings.boost_scheduler_enabled:
		expiry_job = BoostExpiryJob()
		scheduler = JobScheduler()
		scheduler.start()
		scheduler.schedule_every("boost-expiry", expiry_job.run_once, minutes=settings.boost_sweep_interval_minutes)
		app.state.scheduler = scheduler
		logger.info("boost expiry scheduled", extra={"interval_minutes": settings.boost_sweep_interval_minutes})
	try:
		yield
	finally:
		if scheduler is not None:
			scheduler.shutdown()
		await postgres.close_pool()


def create_app() -> FastAPI:
	app = FastAPI(title="Social Core", lifespan=lifespan)
	install_error_handlers(app)
	obs_init(app)
	app.include_router(social.router)
	app.include_router(feed.router)
	app.include_router(notifications.router)
	app.include_router(ops.router)
	return app


app = create_app()
