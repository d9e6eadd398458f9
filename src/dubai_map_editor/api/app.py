from fastapi import FastAPI

from dubai_map_editor.api.routes.dubai import router as dubai_router


def health():
    return {"status": "ok"}


def create_app() -> FastAPI:
    app = FastAPI(title="Dubai Map Editor API")
    app.include_router(dubai_router, prefix="/api/dubai")

    @app.get("/health")
    def _health():
        return health()

    return app


app = create_app()
