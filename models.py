import enum
import secrets
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

LogType = Literal["info", "success", "warning", "error"]


class Stage(str, enum.Enum):
    CONFIG = "config"
    PROMPT = "prompt"
    GENERATING = "generating"
    REVIEW = "review"
    DEPLOYING = "deploying"
    SUCCESS = "success"


class AppConfig(BaseModel):
    github_token: str = ""
    vercel_token: str = ""
    # Resolved from the token by a successful verification, never typed by the user
    github_username: str = ""
    gemini_key: str = ""

    def masked(self) -> "AppConfig":
        def _mask(value: str) -> str:
            return f"{value[:4]}…" if value else ""

        return AppConfig(
            github_token=_mask(self.github_token),
            vercel_token=_mask(self.vercel_token),
            github_username=self.github_username,
            gemini_key=_mask(self.gemini_key),
        )


class FileNode(BaseModel):
    path: str
    content: str


class GeneratedProject(BaseModel):
    name: str
    description: str
    files: List[FileNode]


class RepoInfo(BaseModel):
    name: str
    html_url: str


def _new_log_id() -> str:
    return secrets.token_hex(6)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogEntry(BaseModel):
    id: str = Field(default_factory=_new_log_id)
    timestamp: datetime = Field(default_factory=_utcnow)
    message: str
    type: LogType = "info"


class WorkflowSnapshot(BaseModel):
    stage: Stage
    config: AppConfig
    prompt: str = ""
    project: Optional[GeneratedProject] = None
    repo_url: Optional[str] = None
    deployment_url: Optional[str] = None
    logs: List[LogEntry] = []
    busy: bool = False
