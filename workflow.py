import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional

from ai_client import GeminiClient
from config_store import ConfigStore
from errors import WorkflowBusyError
from github_ops import GitHubOps
from models import AppConfig, GeneratedProject, LogEntry, LogType, Stage, WorkflowSnapshot
from vercel_client import VercelClient, approximate_deployment_url

logger = logging.getLogger('workflow')

# Stages an operation may start from; anything else is a no-op
GENERATE_FROM = (Stage.PROMPT, Stage.REVIEW)
# Success is included so a finished project can be pushed again
DEPLOY_FROM = (Stage.REVIEW, Stage.SUCCESS)


@dataclass
class WorkflowState:
    stage: Stage = Stage.CONFIG
    config: AppConfig = field(default_factory=AppConfig)
    prompt: str = ''
    project: Optional[GeneratedProject] = None
    repo_url: Optional[str] = None
    deployment_url: Optional[str] = None
    logs: List[LogEntry] = field(default_factory=list)


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


class WorkflowController:
    """Drives the wizard: configure, prompt, generate, review, deploy.

    Only one of save_configuration/generate/deploy may run at a time; a second
    trigger while one is in flight raises WorkflowBusyError instead of queueing.
    Operation failures never propagate: they become an ``error`` log entry and
    the stage falls back to the last stable one.
    """

    def __init__(
        self,
        store: ConfigStore,
        generator: Optional[GeminiClient] = None,
        github: Optional[GitHubOps] = None,
        hosting: Optional[VercelClient] = None,
    ):
        self.store = store
        self.generator = generator or GeminiClient()
        self.github = github or GitHubOps()
        self.hosting = hosting or VercelClient()
        self._lock = threading.Lock()

        self.state = WorkflowState()
        saved = store.load()
        if saved is not None:
            self.state.config = saved
            self.state.stage = Stage.PROMPT
            logger.info('Loaded saved config for %s', saved.github_username or '<unverified>')

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def _exclusive(self, operation: str):
        if not self._lock.acquire(blocking=False):
            raise WorkflowBusyError(f'Cannot {operation} while another operation is running')
        try:
            yield
        finally:
            self._lock.release()

    def _log(self, message: str, type: LogType = 'info') -> None:
        self.state.logs.append(LogEntry(message=message, type=type))
        level = logging.ERROR if type == 'error' else logging.WARNING if type == 'warning' else logging.INFO
        logger.log(level, '[%s] %s', self.state.stage.value, message)

    def save_configuration(self, candidate: AppConfig) -> bool:
        with self._exclusive('save configuration'):
            if not candidate.github_token.strip():
                return False
            try:
                username = self.github.verify_credential(candidate.github_token)
                new_config = candidate.model_copy(update={'github_username': username})
                self.store.save(new_config)
            except Exception as e:
                logger.exception('Saving configuration failed')
                self._log(_describe(e), 'error')
                return False
            self.state.config = new_config
            self._log(f'Authenticated as GitHub user: {username}', 'success')
            self.state.stage = Stage.PROMPT
            return True

    def generate(self, prompt: str, mode: str = 'generate') -> bool:
        with self._exclusive('generate'):
            if self.state.stage not in GENERATE_FROM:
                logger.info('Ignoring generate in stage %s', self.state.stage.value)
                return False
            if not prompt or not prompt.strip():
                return False
            self.state.prompt = prompt
            # The previous project and anything deployed from it are no longer active
            self.state.project = None
            self.state.repo_url = None
            self.state.deployment_url = None
            self.state.stage = Stage.GENERATING
            self._log(f'Generating project for: "{prompt}"...', 'info')
            try:
                project = self.generator.generate_project(prompt, mode, self.state.config.gemini_key)
            except Exception as e:
                logger.exception('Generation failed')
                self._log(_describe(e), 'error')
                self.state.stage = Stage.PROMPT
                return False
            self.state.project = project
            self._log(f'Generated project: {project.name}', 'success')
            self._log(f'Created {len(project.files)} files.', 'info')
            self.state.stage = Stage.REVIEW
            return True

    def deploy(self) -> bool:
        with self._exclusive('deploy'):
            project = self.state.project
            config = self.state.config
            if self.state.stage not in DEPLOY_FROM:
                logger.info('Ignoring deploy in stage %s', self.state.stage.value)
                return False
            if project is None or not config.github_username:
                return False
            self.state.stage = Stage.DEPLOYING
            self.state.deployment_url = None
            try:
                self._log('Creating GitHub repository...', 'info')
                repo = self.github.create_repository(config.github_token, project.name, project.description)
                self.state.repo_url = repo.html_url
                self._log(f'Repository created: {repo.html_url}', 'success')

                self.github.push_files(
                    config.github_token,
                    config.github_username,
                    project.name,
                    project.files,
                    lambda msg: self._log(msg, 'info'),
                )
                self._log('All files pushed to GitHub.', 'success')

                if config.vercel_token:
                    self._log('Triggering Vercel deployment...', 'info')
                    self.hosting.create_project(
                        config.vercel_token, project.name, f'{config.github_username}/{project.name}'
                    )
                    self._log('Vercel project created/linked.', 'success')
                    self.state.deployment_url = approximate_deployment_url(project.name)
                    self._log('Deployment queued. Visit https://vercel.com/dashboard to see progress.', 'warning')
                else:
                    self._log('Skipping Vercel deployment (no token provided).', 'warning')
            except Exception as e:
                logger.exception('Deployment failed')
                self._log(_describe(e), 'error')
                self.state.stage = Stage.REVIEW
                return False
            self.state.stage = Stage.SUCCESS
            return True

    def new_prompt(self) -> None:
        with self._exclusive('start a new prompt'):
            self.state.project = None
            self.state.repo_url = None
            self.state.deployment_url = None
            self.state.stage = Stage.PROMPT

    def open_config(self) -> None:
        # Always reachable; leaves project and URLs alone
        self.state.stage = Stage.CONFIG

    def snapshot(self) -> WorkflowSnapshot:
        s = self.state
        return WorkflowSnapshot(
            stage=s.stage,
            config=s.config.masked(),
            prompt=s.prompt,
            project=s.project,
            repo_url=s.repo_url,
            deployment_url=s.deployment_url,
            logs=list(s.logs),
            busy=self.busy,
        )
