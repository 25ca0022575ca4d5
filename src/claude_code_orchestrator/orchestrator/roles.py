"""Agent role catalog used to frame spawned worker processes."""

import logging
from dataclasses import dataclass
from types import MappingProxyType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Role:
	"""An agent role definition."""
	id: str
	name: str
	description: str
	tasks: tuple[str, ...]
	prompt_prefix: str

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"name": self.name,
			"description": self.description,
			"tasks": list(self.tasks),
			"prompt_prefix": self.prompt_prefix,
		}


DEFAULT_ROLE_ID = "generalist"

_ROLES = (
	Role(
		id="architect",
		name="Architect",
		description="Designs system architecture and high-level designs",
		tasks=(
			"Design system architecture",
			"Create high-level designs",
			"Define component interfaces",
			"Make architectural decisions",
			"Evaluate technology choices",
		),
		prompt_prefix=(
			"You are an expert software architect. Focus on designing high-quality, "
			"maintainable architectures and component relationships. Prioritize modularity, "
			"extensibility, and adherence to design principles."
		),
	),
	Role(
		id="implementer",
		name="Implementer",
		description="Implements code and functionality based on designs",
		tasks=(
			"Write code",
			"Implement features",
			"Fix bugs",
			"Refactor code",
			"Optimize performance",
		),
		prompt_prefix=(
			"You are an expert software developer. Focus on implementing clean, maintainable "
			"code that follows best practices. Ensure your code is thoroughly tested and robust."
		),
	),
	Role(
		id="tester",
		name="Tester",
		description="Creates and runs tests to ensure code quality",
		tasks=(
			"Write unit tests",
			"Write integration tests",
			"Create test plans",
			"Perform QA",
			"Find edge cases",
		),
		prompt_prefix=(
			"You are an expert software tester. Focus on creating comprehensive test coverage "
			"and identifying edge cases. Ensure the code is robust and handles errors appropriately."
		),
	),
	Role(
		id="reviewer",
		name="Reviewer",
		description="Reviews code for quality, style, and best practices",
		tasks=(
			"Review code",
			"Suggest improvements",
			"Enforce coding standards",
			"Find potential issues",
			"Optimize code",
		),
		prompt_prefix=(
			"You are an expert code reviewer. Focus on code quality, potential issues, and "
			"adherence to best practices. Look for security vulnerabilities, performance issues, "
			"and maintainability concerns."
		),
	),
	Role(
		id="devops",
		name="DevOps",
		description="Sets up build, deployment, and infrastructure",
		tasks=(
			"Configure CI/CD",
			"Set up infrastructure",
			"Script deployments",
			"Manage dependencies",
			"Optimize build processes",
		),
		prompt_prefix=(
			"You are an expert DevOps engineer. Focus on setting up efficient build pipelines, "
			"deployments, and infrastructure. Ensure reproducibility, reliability, and security."
		),
	),
	Role(
		id="documenter",
		name="Documenter",
		description="Creates documentation for code and systems",
		tasks=(
			"Write documentation",
			"Create API docs",
			"Document architecture",
			"Write user guides",
			"Create diagrams",
		),
		prompt_prefix=(
			"You are an expert technical writer. Focus on creating clear, comprehensive "
			"documentation that helps users understand the system. Use examples and diagrams "
			"where appropriate."
		),
	),
	Role(
		id="generalist",
		name="Generalist",
		description="Performs all types of development tasks",
		tasks=(
			"Design",
			"Implement",
			"Test",
			"Review",
			"Document",
		),
		prompt_prefix=(
			"You are a full-stack software developer with broad expertise. Balance quality, "
			"maintainability, and efficiency in all tasks you undertake."
		),
	),
)

# Keyed by upper-cased id; read-only for the life of the process
AGENT_ROLES = MappingProxyType({role.id.upper(): role for role in _ROLES})


def get_role(role_id: str | None) -> Role:
	"""
	Look up a role by id (case-insensitive).

	Unknown ids fall back to the generalist role.
	"""
	role = AGENT_ROLES.get((role_id or "").upper())
	if role is None:
		logger.warning(f"Role {role_id} not found, defaulting to {DEFAULT_ROLE_ID}")
		return AGENT_ROLES[DEFAULT_ROLE_ID.upper()]
	return role


def list_roles() -> list[Role]:
	"""All roles in catalog order."""
	return list(AGENT_ROLES.values())


def prompt_prefix_for(role_id: str | None) -> str:
	return get_role(role_id).prompt_prefix
