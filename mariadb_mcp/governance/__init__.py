"""Statement governance for the MariaDB MCP server.

Provides the lexical SQL policy engine (verb allow/deny lists with
permission flags for INSERT, UPDATE and DELETE) and the runtime policy
object that enforces it for a configured target.
"""
