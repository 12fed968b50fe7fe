from offlinebuilder.backend.resolver import file_name_from_url, resolve_tools

__all__ = ["file_name_from_url", "resolve_tools"]
