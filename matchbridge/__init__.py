"""
Matchbridge - Match-found to game-server provisioning bridge

Responsibilities:
- Accept match-found webhooks and single-player ticket requests
- Poll matchmaking tickets until they resolve
- Resolve full match details from the matchmaking backend
- Provision a game server for each match on the hosting backend
- Report one provisioning outcome per match
"""
