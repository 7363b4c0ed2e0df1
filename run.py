#!/usr/bin/env python3
"""
Entry point for the matchmaking bridge.

Usage:
    python run.py                    # Run the bridge (default)
    python run.py serve              # Run the bridge explicitly
    python run.py match <MatchId> <QueueName>
                                     # Provision one match in the foreground

Environment Variables:
    FLASK_ENV: development or production (default: development)
    PORT: Port to run on (default: 9000)
    PLAYFAB_TITLE_ID, PLAYFAB_SECRET_KEY: PlayFab title credentials
    GAMEYE_URL, GAMEYE_TOKEN, GAMEYE_GAME_KEY, GAMEYE_TEMPLATE_KEY: Gameye settings
"""
import atexit
import logging
import os
import sys

logger = logging.getLogger('matchbridge.run')


def run_bridge():
    """Run the HTTP front door with its background flows."""
    from matchbridge.app import create_app

    app = create_app()
    app.bridge_context.start()
    atexit.register(app.supervisor.shutdown)

    port = int(os.getenv('PORT', 9000))
    logger.info(f"Starting server at port {port}")
    app.run(host='0.0.0.0', port=port, debug=False, threaded=True)


def run_single_match(match_id: str, queue_name: str):
    """Provision one match synchronously and print the outcome."""
    import json
    from matchbridge.app import create_app
    from matchbridge.models import MatchFoundSignal

    app = create_app()
    app.bridge_context.start()
    outcome = app.orchestrator.handle_match_found(MatchFoundSignal(match_id=match_id, queue_name=queue_name))
    print(json.dumps(outcome.to_dict(), indent=2))
    return 0 if outcome.is_allocated else 1


if __name__ == '__main__':
    mode = sys.argv[1] if len(sys.argv) > 1 else 'serve'

    if mode == 'serve':
        run_bridge()
    elif mode == 'match' and len(sys.argv) == 4:
        sys.exit(run_single_match(sys.argv[2], sys.argv[3]))
    else:
        print(f"Unknown mode: {mode}")
        print("Usage: python run.py [serve|match <MatchId> <QueueName>]")
        sys.exit(1)
