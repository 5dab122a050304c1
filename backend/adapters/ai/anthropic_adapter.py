"""
Anthropic Claude adapter for project scaffold generation.
"""

import asyncio
import json
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import anthropic

from core.exceptions import ConfigurationError, TransientError
from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

TRANSIENT_API_ERRORS = (
    anthropic.APITimeoutError,
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)
FATAL_API_ERRORS = (
    anthropic.AuthenticationError,
    anthropic.PermissionDeniedError,
)


async def _retry_with_backoff(coro_factory, max_retries=3, base_delay=1.0):
    """Retry an async operation with exponential backoff + jitter."""
    for attempt in range(max_retries + 1):
        try:
            return await coro_factory()
        except Exception as e:
            error_str = str(e).lower()
            is_transient = isinstance(e, TRANSIENT_API_ERRORS) or any(
                k in error_str for k in ["rate_limit", "429", "502", "503", "504", "overloaded"]
            )
            if not is_transient or attempt == max_retries:
                raise
            delay = base_delay * (2 ** attempt) + random.uniform(0, 1)
            logger.warning("Transient API error (attempt %d/%d), retrying in %.1fs: %s", attempt + 1, max_retries, delay, str(e))
            await asyncio.sleep(delay)


# Longest app idea accepted end to end; prompts carry it untruncated
MAX_APP_IDEA_LENGTH = 5000

SCAFFOLD_KEYS = (
    "projectStructure",
    "databaseSchema",
    "apiEndpoints",
    "environmentVariables",
    "dependencies",
    "deploymentConfig",
    "securityRecommendations",
)

# Expected JSON type per key; anything else is replaced by the default
_KEY_TYPES = {
    "projectStructure": dict,
    "databaseSchema": list,
    "apiEndpoints": list,
    "environmentVariables": dict,
    "dependencies": dict,
    "deploymentConfig": dict,
    "securityRecommendations": list,
}

DEFAULT_SECURITY_RECOMMENDATIONS = [
    "Enable Row Level Security (RLS) on all database tables",
    "Use environment variables for all secrets and API keys",
    "Implement proper input validation and sanitization",
    "Add CORS headers and CSP policies",
    "Use HTTPS in production",
    "Implement rate limiting on API endpoints",
    "Regular security audits and dependency updates",
]


def default_project_structure(frontend_stack: str, backend_stack: Optional[str] = None) -> Dict[str, Any]:
    structure: Dict[str, Any] = {
        "src": {
            "components": ["ui", "layout", "forms"],
            "pages": ["Home.tsx", "About.tsx"],
            "hooks": ["useAuth.ts", "useApi.ts"],
            "lib": ["utils.ts", "constants.ts"],
            "types": ["index.ts"],
        },
        "public": ["favicon.ico", "manifest.json"],
        "docs": ["README.md", "DEPLOYMENT.md"],
    }
    if backend_stack == "supabase":
        structure["supabase"] = {
            "migrations": ["001_initial.sql"],
            "functions": ["api-handler"],
        }
    return structure


def default_environment_variables(frontend_stack: str, backend_stack: Optional[str] = None) -> Dict[str, str]:
    env_vars = {
        "NODE_ENV": "development",
        "VITE_APP_NAME": "My App",
    }
    if backend_stack == "supabase":
        env_vars["VITE_SUPABASE_URL"] = "your_supabase_url"
        env_vars["VITE_SUPABASE_ANON_KEY"] = "your_supabase_anon_key"
    return env_vars


def default_dependencies(frontend_stack: str, backend_stack: Optional[str] = None) -> Dict[str, str]:
    deps = {
        "react": "^18.2.0",
        "react-dom": "^18.2.0",
        "typescript": "^5.0.0",
    }
    if "nextjs" in (frontend_stack or ""):
        deps["next"] = "^14.0.0"
    if backend_stack == "supabase":
        deps["@supabase/supabase-js"] = "^2.38.0"
    return deps


def default_deployment_config(frontend_stack: str) -> Dict[str, str]:
    return {
        "platform": "vercel",
        "buildCommand": "npm run build",
        "outputDirectory": "dist",
        "nodeVersion": "18.x",
    }


def default_scaffold_value(key: str, frontend_stack: str, backend_stack: Optional[str] = None) -> Any:
    """Deterministic fallback for one scaffold key."""
    if key == "projectStructure":
        return default_project_structure(frontend_stack, backend_stack)
    if key == "environmentVariables":
        return default_environment_variables(frontend_stack, backend_stack)
    if key == "dependencies":
        return default_dependencies(frontend_stack, backend_stack)
    if key == "deploymentConfig":
        return default_deployment_config(frontend_stack)
    if key == "securityRecommendations":
        return list(DEFAULT_SECURITY_RECOMMENDATIONS)
    return []


def generate_project_name(app_idea: str) -> str:
    """
    Short kebab-case name from the first three meaningful words of the idea.

    >>> generate_project_name("A task tracker for remote teams")
    'task-tracker-remote'
    """
    cleaned = re.sub(r"[^a-z0-9\s]", "", (app_idea or "").lower())
    words = [word for word in cleaned.split() if len(word) > 3][:3]
    return "-".join(words) or "my-app"


@dataclass
class GeneratedScaffold:
    """Scaffold result. Keys the model did not supply hold defaults."""

    project_structure: Dict[str, Any]
    database_schema: List[Any]
    api_endpoints: List[Any]
    environment_variables: Dict[str, Any]
    dependencies: Dict[str, Any]
    deployment_config: Dict[str, Any]
    security_recommendations: List[Any]
    model: Optional[str] = None
    defaulted_keys: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectStructure": self.project_structure,
            "databaseSchema": self.database_schema,
            "apiEndpoints": self.api_endpoints,
            "environmentVariables": self.environment_variables,
            "dependencies": self.dependencies,
            "deploymentConfig": self.deployment_config,
            "securityRecommendations": self.security_recommendations,
        }


def build_scaffold(
    data: Optional[Dict[str, Any]],
    frontend_stack: str,
    backend_stack: Optional[str] = None,
    model: Optional[str] = None,
) -> GeneratedScaffold:
    """Fill every scaffold key from ``data``, substituting defaults per key."""
    data = data if isinstance(data, dict) else {}
    values = {}
    defaulted = []
    for key in SCAFFOLD_KEYS:
        value = data.get(key)
        if not value or not isinstance(value, _KEY_TYPES[key]):
            value = default_scaffold_value(key, frontend_stack, backend_stack)
            defaulted.append(key)
        values[key] = value

    return GeneratedScaffold(
        project_structure=values["projectStructure"],
        database_schema=values["databaseSchema"],
        api_endpoints=values["apiEndpoints"],
        environment_variables=values["environmentVariables"],
        dependencies=values["dependencies"],
        deployment_config=values["deploymentConfig"],
        security_recommendations=values["securityRecommendations"],
        model=model,
        defaulted_keys=defaulted,
    )


def parse_scaffold_response(response_text: str) -> Optional[Dict[str, Any]]:
    """JSON object from the model reply, or None when it cannot be parsed."""
    if "```json" in response_text:
        response_text = response_text.split("```json")[1].split("```")[0]
    elif "```" in response_text:
        response_text = response_text.split("```")[1].split("```")[0]
    try:
        data = json.loads(response_text.strip())
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


class AnthropicScaffoldService:
    """Project scaffold generation using Anthropic Claude."""

    SYSTEM_PROMPT = (
        "You are an expert software architect who creates production-ready project scaffolds. "
        "Always return valid JSON that matches the requested schema exactly."
    )

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: int = 2,
    ):
        api_key = api_key if api_key is not None else settings.anthropic_api_key
        self._timeout = timeout_seconds or settings.generation_timeout_seconds
        if api_key:
            self._client = anthropic.AsyncAnthropic(api_key=api_key, timeout=self._timeout)
        else:
            self._client = None
        self._model = model or settings.anthropic_model
        self._max_tokens = max_tokens or settings.anthropic_max_tokens
        self._max_retries = max_retries

    @property
    def model(self) -> str:
        return self._model

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    @staticmethod
    def _sanitize_prompt_input(text: Optional[str], max_length: int) -> str:
        """Strip control characters and limit length to prevent prompt injection."""
        if not text:
            return ""
        text = re.sub(r'[\r\n\t\x00-\x1f\x7f]', ' ', text)
        text = re.sub(r' +', ' ', text).strip()
        return text[:max_length]

    def _build_prompt(
        self,
        app_idea: str,
        frontend_stack: str,
        backend_stack: Optional[str],
        auth_method: Optional[str],
        base_template: Optional[Dict[str, Any]],
    ) -> str:
        template_text = json.dumps(base_template)[:8000] if base_template else "None"
        return f"""Generate a complete, production-ready project scaffold for the following application:

**App Description:** {app_idea}

**Technology Stack:**
- Frontend: {frontend_stack}
- Backend: {backend_stack or 'None specified'}
- Authentication: {auth_method or 'None specified'}

**Requirements:**
1. Create a complete file/folder structure optimized for the chosen stack
2. Generate database schema with proper relationships and indexes
3. Define API endpoints with proper REST conventions
4. Include security best practices and access policies
5. Add environment variables configuration
6. Provide deployment configuration
7. Include comprehensive dependency list

**Base Template:** {template_text}

**Output Format:** Return only a JSON object with this structure:
{{
    "projectStructure": {{}},
    "databaseSchema": [],
    "apiEndpoints": [],
    "environmentVariables": {{}},
    "dependencies": {{}},
    "deploymentConfig": {{}},
    "securityRecommendations": []
}}

Make sure the structure follows modern conventions for {frontend_stack} and includes TypeScript
configuration, linting, a testing setup, CI/CD, Docker for production, security headers and CORS,
error handling and logging."""

    async def generate_scaffold(
        self,
        app_idea: str,
        frontend_stack: str,
        backend_stack: Optional[str] = None,
        auth_method: Optional[str] = None,
        base_template: Optional[Dict[str, Any]] = None,
    ) -> GeneratedScaffold:
        """
        Generate a project scaffold for an app idea.

        A reply that is not valid JSON, or that omits keys, degrades to the
        stack-aware defaults rather than failing.

        Args:
            app_idea: Free-text app description
            frontend_stack: Frontend technology
            backend_stack: Backend technology, if any
            auth_method: Authentication method, if any
            base_template: File structure of a template to start from

        Returns:
            GeneratedScaffold with every key populated

        Raises:
            ConfigurationError: API key missing or rejected
            TransientError: timeout, connection failure, rate limit or upstream 5xx
        """
        if not self._client:
            raise ConfigurationError("Scaffold generation is not configured")

        app_idea = self._sanitize_prompt_input(app_idea, MAX_APP_IDEA_LENGTH)
        prompt = self._build_prompt(app_idea, frontend_stack, backend_stack, auth_method, base_template)

        try:
            message = await asyncio.wait_for(
                _retry_with_backoff(
                    lambda: self._client.messages.create(
                        model=self._model,
                        max_tokens=self._max_tokens,
                        temperature=0.3,
                        system=self.SYSTEM_PROMPT,
                        messages=[{"role": "user", "content": prompt}],
                    ),
                    max_retries=self._max_retries,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning("Scaffold generation timed out after %.0fs", self._timeout)
            raise TransientError("Scaffold generation timed out, please try again") from e
        except FATAL_API_ERRORS as e:
            logger.error(f"Anthropic rejected credentials: {e}")
            raise ConfigurationError("Scaffold generation is not configured") from e
        except TRANSIENT_API_ERRORS as e:
            logger.warning(f"Anthropic unavailable: {e}")
            raise TransientError() from e
        except anthropic.APIStatusError as e:
            if e.status_code >= 500:
                logger.warning(f"Anthropic returned {e.status_code}: {e}")
                raise TransientError() from e
            logger.error(f"Anthropic request failed with {e.status_code}: {e}")
            raise

        response_text = message.content[0].text if message.content else ""
        data = parse_scaffold_response(response_text)
        if data is None:
            logger.warning("Could not parse scaffold JSON (%d chars), using defaults", len(response_text))

        scaffold = build_scaffold(data, frontend_stack, backend_stack, model=self._model)
        if scaffold.defaulted_keys:
            logger.warning("Scaffold keys filled with defaults: %s", ", ".join(scaffold.defaulted_keys))
        return scaffold


# Singleton instance
scaffold_ai_service = AnthropicScaffoldService()
