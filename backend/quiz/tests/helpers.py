"""Catalog fixture data shared by the quiz tests."""

from shared.db import Database

TEST_SECRET = "quiz-test-secret-0123456789"
NOW = 1_700_000_000

EASY_PLAYER_ID = 1
EASY_PLAYER_NAME = "Kylian Mbappé"
HARD_PLAYER_ID = 2
HARD_PLAYER_NAME = "N'Golo Kanté"
ULTRA_PLAYER_ID = 3
ULTRA_PLAYER_NAME = "Obscure Keeper"

# (player_id, name, [(competition_id, appearances)], transfer count)
CATALOG: list[tuple[int, str, list[tuple[str, int]], int]] = [
    # intl 90 * 1.25 = 112.5 -> easy; top5 250 keeps it easy
    (EASY_PLAYER_ID, EASY_PLAYER_NAME, [("CL", 90), ("FR1", 250)], 2),
    # intl 40 * 1.25 = 50 -> hard
    (HARD_PLAYER_ID, HARD_PLAYER_NAME, [("CL", 40), ("GB1", 300)], 0),
    # unknown competition only -> ultra, never drawn in normal mode
    (ULTRA_PLAYER_ID, ULTRA_PLAYER_NAME, [("XX9", 500)], 9),
]


def seed_catalog(db: Database) -> None:
    conn = db.connection
    for player_id, name, stats, transfers in CATALOG:
        conn.execute("INSERT INTO players (id, name) VALUES (?, ?)", (player_id, name))
        conn.executemany(
            "INSERT INTO player_stats (player_id, competition_id, appearances) VALUES (?, ?, ?)",
            [(player_id, comp, apps) for comp, apps in stats],
        )
        conn.executemany(
            "INSERT INTO transfers (player_id, season) VALUES (?, ?)",
            [(player_id, f"{10 + i}/{11 + i}") for i in range(transfers)],
        )
    conn.commit()
