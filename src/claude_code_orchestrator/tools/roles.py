"""Role catalog tools."""

import json

from mcp.server.fastmcp import FastMCP

from ..orchestrator.roles import AGENT_ROLES, list_roles


def register_role_tools(mcp: FastMCP) -> None:
	"""Register role catalog tools."""

	@mcp.tool(name="list_roles")
	async def list_agent_roles() -> str:
		"""List the agent roles tasks can be assigned to."""
		return json.dumps({
			"roles": [
				{"id": role.id, "name": role.name, "description": role.description}
				for role in list_roles()
			],
		}, indent=2)

	@mcp.tool()
	async def get_role_details(role: str) -> str:
		"""
		Get a role's description, typical tasks, and the prompt prefix given to its workers.

		Args:
			role: Role ID (case-insensitive)
		"""
		found = AGENT_ROLES.get(role.upper())
		if found is None:
			return json.dumps({"success": False, "error": f"Role not found: {role}"})
		return json.dumps({"success": True, "role": found.to_dict()}, indent=2)
