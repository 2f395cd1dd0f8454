import logging
from typing import Optional

from fastapi import FastAPI

from billcalc.configs.settings import AppSettings, load_settings
from billcalc.controllers import billing
from billcalc.managers.session_manager import BillingSession
from billcalc.managers.settings_store import JsonFileStore, SettingsStore


def create_app(
    settings: Optional[AppSettings] = None, store: Optional[SettingsStore] = None
) -> FastAPI:
    settings = settings or load_settings()
    if store is None:
        store = JsonFileStore(settings.settings_file, settings.settings_key)

    app = FastAPI()
    app.state.settings = settings
    app.state.session = BillingSession.open(store)
    app.include_router(billing.router)
    return app


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
