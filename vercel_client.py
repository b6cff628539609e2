import logging
from typing import Optional

import requests

import settings
from errors import UpstreamRejectedError, UpstreamUnreachableError

logger = logging.getLogger('vercel-client')


def approximate_deployment_url(project_name: str) -> str:
    # Vercel usually serves a project at <name>.vercel.app, but may pick another
    # subdomain when that one is taken. The response is not consulted.
    return f'https://{project_name}.{settings.HOSTING_DOMAIN}'


class VercelClient:
    """Registers a GitHub repository as a Vercel project.

    Linking the repository is what queues the first deployment; this client
    does not poll for its outcome.
    """

    def __init__(self, api_base: Optional[str] = None, timeout: Optional[float] = None):
        self.api_base = (api_base or settings.VERCEL_API_BASE).rstrip('/')
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT

    def create_project(self, token: str, name: str, repo_ref: str) -> dict:
        headers = {'Authorization': f'Bearer {token}', 'Content-Type': 'application/json'}
        payload = {
            'name': name,
            'framework': None,
            'gitRepository': {'type': 'github', 'repo': repo_ref},
        }
        try:
            r = requests.post(f'{self.api_base}/v9/projects', headers=headers, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.exception('Vercel project request failed')
            raise UpstreamUnreachableError(f'Could not reach Vercel: {e}') from e

        if not r.ok:
            try:
                err = (r.json().get('error') or {}).get('message')
            except (ValueError, AttributeError):
                err = None
            message = err or (r.text or '')[:300] or f'HTTP {r.status_code}'
            logger.warning('Vercel create project returned %s: %s', r.status_code, message)
            raise UpstreamRejectedError(f'Vercel Error: {message}', status_code=r.status_code)

        project = r.json()
        logger.info('Vercel project %s linked to %s (id=%s)', name, repo_ref, project.get('id'))
        return project
