import logging
import os
from typing import Literal, Optional

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel

import settings
from config_store import ConfigStore
from errors import WorkflowBusyError
from models import AppConfig, WorkflowSnapshot
from workflow import WorkflowController

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))
logger = logging.getLogger("autodeploy")

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")

logger.info("Using state file: %s", os.path.abspath(settings.STATE_FILE))
controller = WorkflowController(ConfigStore(settings.STATE_FILE))

app = FastAPI(title="AutoDeploy Agent")


class ConfigRequest(BaseModel):
    # Omitted fields keep their current value, like a pre-filled form
    github_token: Optional[str] = None
    vercel_token: Optional[str] = None
    gemini_key: Optional[str] = None


class GenerateRequest(BaseModel):
    prompt: str
    mode: Literal["generate", "refine"] = "generate"


@app.exception_handler(WorkflowBusyError)
async def busy_handler(request: Request, exc: WorkflowBusyError):
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=409, content={"ok": False, "error": str(exc)})


@app.get("/")
def index():
    return FileResponse(os.path.join(STATIC_DIR, "index.html"))


@app.get("/api/state", response_model=WorkflowSnapshot)
def get_state():
    return controller.snapshot()


@app.post("/api/config", response_model=WorkflowSnapshot)
def save_config(req: ConfigRequest):
    current = controller.state.config
    candidate = AppConfig(
        github_token=current.github_token if req.github_token is None else req.github_token.strip(),
        vercel_token=current.vercel_token if req.vercel_token is None else req.vercel_token.strip(),
        gemini_key=current.gemini_key if req.gemini_key is None else req.gemini_key.strip(),
    )
    controller.save_configuration(candidate)
    return controller.snapshot()


@app.post("/api/generate", response_model=WorkflowSnapshot)
def generate(req: GenerateRequest):
    controller.generate(req.prompt, req.mode)
    return controller.snapshot()


@app.post("/api/deploy", response_model=WorkflowSnapshot)
def deploy():
    controller.deploy()
    return controller.snapshot()


@app.post("/api/new-prompt", response_model=WorkflowSnapshot)
def new_prompt():
    controller.new_prompt()
    return controller.snapshot()


@app.post("/api/open-config", response_model=WorkflowSnapshot)
def open_config():
    controller.open_config()
    return controller.snapshot()


@app.get("/health")
def health():
    return {"ok": True}
