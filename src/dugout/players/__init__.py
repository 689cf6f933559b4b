"""Player identity resolution for provider player ids."""

from dugout.players.resolver import PlayerResolver, ResolverStats

__all__ = ["PlayerResolver", "ResolverStats"]
