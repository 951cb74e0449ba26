"""Discord front end for the CWL bonus-medal leaderboard."""
