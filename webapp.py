from __future__ import annotations

import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from glide_nodes.config import get_settings, setup_logging
from hub.api_nodes import router as nodes_router


# Load local environment variables for development parity
load_dotenv(override=True)
setup_logging(get_settings())

app = FastAPI()

# CORS for the host UI
_cors_env = os.getenv("CORS_ORIGINS", "*").strip()
if _cors_env == "*":
	origins = ["*"]
else:
	origins = [o.strip() for o in _cors_env.split(",") if o.strip()]
app.add_middleware(
	CORSMiddleware,
	allow_origins=origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

app.include_router(nodes_router)


@app.get("/health")
def health() -> dict:
	"""Simple health check."""
	return {"status": "ok"}
