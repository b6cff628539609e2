import base64
import logging
from typing import Callable, Iterable, Optional
from urllib.parse import quote

import requests

import settings
from errors import (
    ContentLookupError,
    CredentialInvalidError,
    FileUploadError,
    UpstreamRejectedError,
    UpstreamUnreachableError,
)
from models import FileNode, RepoInfo

logger = logging.getLogger('github-ops')

COLLISION_MARKER = 'name already exists'


def _headers(token: str) -> dict:
    return {'Authorization': f'token {token}', 'Accept': 'application/vnd.github.v3+json'}


def _error_messages(resp: requests.Response) -> list:
    try:
        body = resp.json()
    except ValueError:
        return [resp.text[:300]] if resp.text else []
    if not isinstance(body, dict):
        return []
    messages = [body['message']] if body.get('message') else []
    # 422s put the useful detail in errors[], e.g. "name already exists on this account"
    for err in body.get('errors') or []:
        if isinstance(err, dict) and err.get('message'):
            messages.append(err['message'])
        elif isinstance(err, str):
            messages.append(err)
    return messages


class GitHubOps:
    """GitHub REST client for the provisioning step.

    Each public method is a standalone call; the workflow controller decides
    the order. Nothing is retried and nothing already pushed is rolled back.
    """

    def __init__(self, api_base: Optional[str] = None, timeout: Optional[float] = None):
        self.api_base = (api_base or settings.GITHUB_API_BASE).rstrip('/')
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT

    def _contents_url(self, account: str, repo_name: str, path: str) -> str:
        return f'{self.api_base}/repos/{account}/{repo_name}/contents/{quote(path)}'

    def verify_credential(self, token: str) -> str:
        try:
            r = requests.get(f'{self.api_base}/user', headers=_headers(token), timeout=self.timeout)
        except requests.RequestException as e:
            logger.exception('GitHub /user lookup failed')
            raise UpstreamUnreachableError(f'Could not reach GitHub: {e}') from e
        if not r.ok:
            logger.warning('GitHub /user returned %s', r.status_code)
            raise CredentialInvalidError('Invalid GitHub Token')
        login = r.json().get('login')
        if not login:
            raise CredentialInvalidError('Invalid GitHub Token')
        logger.info('Token belongs to %s', login)
        return login

    def create_repository(self, token: str, name: str, description: str) -> RepoInfo:
        payload = {'name': name, 'description': description, 'private': False, 'auto_init': True}
        try:
            r = requests.post(f'{self.api_base}/user/repos', headers=_headers(token), json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.exception('GitHub repo creation request failed')
            raise UpstreamUnreachableError(f'Could not reach GitHub: {e}') from e

        if r.ok:
            data = r.json()
            full_name = data.get('full_name')
            html_url = data.get('html_url') or (f'https://github.com/{full_name}' if full_name else None)
            if not html_url:
                logger.warning('Create repo returned %s without a repository URL', r.status_code)
                raise UpstreamRejectedError(
                    'GitHub Create Repo Error: response did not include the repository URL',
                    status_code=r.status_code,
                )
            logger.info('Created GitHub repo %s', full_name or name)
            return RepoInfo(name=data.get('name') or name, html_url=html_url)

        messages = _error_messages(r)
        if any(COLLISION_MARKER in m for m in messages):
            # Reuse the existing repo. Its ownership and contents are not checked;
            # the URL is built from the token's login, not read back from GitHub.
            owner = self.verify_credential(token)
            logger.info('Repo %s/%s already exists (%s); reusing it', owner, name, r.status_code)
            return RepoInfo(name=name, html_url=f'https://github.com/{owner}/{name}')

        detail = '; '.join(messages) or f'HTTP {r.status_code}'
        logger.warning('Create repo returned %s: %s', r.status_code, detail)
        raise UpstreamRejectedError(f'GitHub Create Repo Error: {detail}', status_code=r.status_code)

    def lookup_file_sha(self, token: str, account: str, repo_name: str, path: str) -> Optional[str]:
        """Return the blob sha of ``path`` or None when the file does not exist yet.

        Any other outcome (network error, 5xx, auth failure) raises
        ContentLookupError so callers can tell "missing" apart from "unknown".
        """
        url = self._contents_url(account, repo_name, path)
        try:
            r = requests.get(url, headers=_headers(token), timeout=self.timeout)
        except requests.RequestException as e:
            raise ContentLookupError(f'Lookup of {path} failed: {e}') from e
        if r.status_code == 404:
            return None
        if r.status_code != 200:
            raise ContentLookupError(f'Lookup of {path} returned HTTP {r.status_code}')
        try:
            data = r.json()
        except ValueError as e:
            raise ContentLookupError(f'Lookup of {path} returned a non-JSON body') from e
        # A directory listing comes back as a list; there is no single sha to update
        if not isinstance(data, dict):
            raise ContentLookupError(f'{path} is a directory in the repository')
        return data.get('sha')

    def push_files(
        self,
        token: str,
        account: str,
        repo_name: str,
        files: Iterable[FileNode],
        on_progress: Callable[[str], None],
    ) -> None:
        for file in files:
            on_progress(f'Pushing {file.path}...')

            try:
                sha = self.lookup_file_sha(token, account, repo_name, file.path)
            except ContentLookupError as e:
                logger.warning('%s; uploading as a new file', e)
                sha = None

            payload = {
                'message': f'Add {file.path} via AutoDeploy Agent',
                'content': base64.b64encode(file.content.encode('utf-8')).decode('ascii'),
            }
            if sha:
                payload['sha'] = sha

            url = self._contents_url(account, repo_name, file.path)
            try:
                r = requests.put(url, headers=_headers(token), json=payload, timeout=self.timeout)
            except requests.RequestException as e:
                logger.exception('Uploading %s failed', file.path)
                raise FileUploadError(file.path) from e
            if r.status_code not in (200, 201):
                logger.warning('Uploading %s returned %s: %s', file.path, r.status_code, (r.text or '')[:500])
                raise FileUploadError(file.path, status_code=r.status_code)
            logger.info('Uploaded %s to %s/%s', file.path, account, repo_name)
