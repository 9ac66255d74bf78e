#!/usr/bin/env python3
# apimain.py
# To run this app, use: uvicorn rag_webhook.apimain:app --reload

import uvicorn
from fastapi import FastAPI

from rag_webhook.config.settings import API_HOST, API_PORT
from rag_webhook.utils.logging_config import setup_client_logging


def create_app() -> FastAPI:
    # Import endpoints lazily so the service graph is only built on first request
    from rag_webhook.api.endpoints import router as api_router
    from rag_webhook.api.endpoints import webhook_router

    setup_client_logging()

    app = FastAPI(
        title="RAG Webhook Chat",
        description="Conversational webhook answering questions from a private corpus with Retrieval-Augmented Generation",
        version="1.0.0",
    )

    app.include_router(webhook_router)
    app.include_router(api_router)

    return app


app = create_app()


def main() -> None:
    uvicorn.run(app, host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
