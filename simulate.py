"""
Simple simulation script: plays a few lobbies end to end over HTTP.
"""

import requests
import random
import time
import sys


def main():
    BASE_URL = "http://localhost:8000/api"
    NUM_GAMES = 5
    NAMES = ["Alice", "Bob", "Carol", "Dave", "Eve", "Frank"]

    print("=== Music Jeopardy Simulation ===\n")

    finished = 0
    for game_num in range(NUM_GAMES):
        max_players = random.choice([2, 3, 4])
        response = requests.post(
            f"{BASE_URL}/games",
            json={
                "title": f"Quiz {game_num + 1} ({int(time.time())})",
                "question": "Name that tune",
                "maxPlayers": max_players
            }
        )
        if response.status_code != 200:
            print(f"Failed to create game: {response.text}")
            continue

        game_id = response.json()["id"]
        print(f"Game {game_id}: capacity {max_players}")

        # More people than seats: the extra joins must be turned away
        players = []
        for name in random.sample(NAMES, max_players + 1):
            response = requests.post(
                f"{BASE_URL}/games/{game_id}/join",
                json={"playerName": name}
            )
            if response.status_code == 200:
                players = response.json()["players"]
                print(f"  {name} joined")
            else:
                print(f"  {name} rejected: {response.json()['detail']}")

        if not players:
            continue

        half = max(1, len(players) // 2)
        for team_name, members in (("Red", players[:half]), ("Blue", players[half:])):
            if members:
                requests.post(
                    f"{BASE_URL}/games/{game_id}/teams",
                    json={"name": team_name, "playerIds": [p["id"] for p in members]}
                )

        requests.patch(f"{BASE_URL}/games/{game_id}", json={"status": "IN_PROGRESS"})

        scores = {p["id"]: random.randint(0, 10) * 100 for p in players}
        ranked = sorted(players, key=lambda p: scores[p["id"]], reverse=True)
        results = [
            {
                "playerId": p["id"],
                "score": scores[p["id"]],
                "position": position,
                "isWinner": position == 1
            }
            for position, p in enumerate(ranked, 1)
        ]
        response = requests.patch(
            f"{BASE_URL}/games/{game_id}",
            json={"status": "COMPLETED", "results": results}
        )
        if response.status_code == 200:
            finished += 1
            winner = ranked[0]
            print(f"  Winner: {winner['name']} with {scores[winner['id']]} points")
        else:
            print(f"  Failed to complete game: {response.text}")

    print("\n=== History ===\n")
    response = requests.get(f"{BASE_URL}/games/history")
    if response.status_code == 200:
        for game in response.json()[:finished]:
            podium = ", ".join(
                f"{r['position']}. {r['player']['name']} ({r['score']:.0f})" for r in game["results"]
            )
            print(f"  {game['title']}: {podium}")

    if finished == 0:
        print("X No game completed")
        sys.exit(1)

    print("\n Simulation complete!")


if __name__ == "__main__":
    main()
