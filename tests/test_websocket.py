class TestGameSocket:

    def join_room(self, ws, game_id):
        ws.send_json({"event": "join-game", "data": game_id})
        ack = ws.receive_json()
        assert ack["event"] == "game-state-update"
        return ack

    def test_join_receives_current_state(self, client):
        with client.websocket_connect("/ws") as ws:
            ack = self.join_room(ws, 5)
            assert ack["data"]["isPlaying"] is False
            assert ack["data"]["buzzOrder"] == []

    def test_relay_reaches_other_members_only(self, client):
        with client.websocket_connect("/ws") as sender, client.websocket_connect("/ws") as peer:
            self.join_room(sender, "5")
            self.join_room(peer, 5)

            sender.send_json({"event": "avatar-updated", "data": {
                "gameId": "5", "playerId": 3, "avatarUrl": "https://cdn.example.com/a.png"
            }})

            message = peer.receive_json()
            assert message["event"] == "avatar-updated"
            assert message["data"]["playerId"] == 3
            assert message["seq"] == 1

            # The next thing the sender sees is its own pong, not the relay
            sender.send_json({"event": "ping"})
            assert sender.receive_json()["event"] == "pong"

    def test_relay_does_not_cross_rooms(self, client):
        with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
            self.join_room(a, 1)
            self.join_room(b, 2)

            a.send_json({"event": "team-updated", "data": {"gameId": 1, "team": {"id": 9}}})

            b.send_json({"event": "ping"})
            assert b.receive_json()["event"] == "pong"

    def test_game_state_update_replaces_snapshot(self, client):
        with client.websocket_connect("/ws") as host:
            self.join_room(host, 6)

            host.send_json({"event": "game-state-update", "data": {
                "gameId": 6, "currentQuestion": {"id": 1}, "isPlaying": True
            }})
            assert host.receive_json()["data"]["isPlaying"] is True

            host.send_json({"event": "game-state-update", "data": {"gameId": 6, "scoreboard": [10]}})
            assert host.receive_json()["data"] == {"gameId": 6, "scoreboard": [10]}

            with client.websocket_connect("/ws") as late:
                ack = self.join_room(late, 6)
                assert ack["data"] == {"gameId": 6, "scoreboard": [10]}

    def test_unknown_event(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "self-destruct", "data": {}})
            message = ws.receive_json()
            assert message["event"] == "error"
            assert "self-destruct" in message["data"]["detail"]

    def test_invalid_json(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("{not json")
            message = ws.receive_json()
            assert message == {"event": "error", "data": {"detail": "Invalid JSON"}}

    def test_relay_with_bad_payload(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "player-updated", "data": {"player": {"id": 1}}})
            message = ws.receive_json()
            assert message["event"] == "error"
            assert message["data"]["event"] == "player-updated"

    def test_http_join_is_broadcast(self, client):
        game = client.post("api/games", json={"title": "Live", "question": ""}).json()

        with client.websocket_connect("/ws") as ws:
            self.join_room(ws, game["id"])

            response = client.post(f"api/games/{game['id']}/join", json={"playerName": "Alice"})
            assert response.status_code == 200

            message = ws.receive_json()
            assert message["event"] == "player-updated"
            assert message["data"]["player"]["name"] == "Alice"

    def test_notify_avatar_update_reaches_room(self, client):
        with client.websocket_connect("/ws") as ws:
            self.join_room(ws, 12)

            client.post("api/notify-avatar-update", json={
                "gameId": "12", "playerId": "7", "avatarUrl": "https://cdn.example.com/b.png"
            })

            message = ws.receive_json()
            assert message["event"] == "avatar-updated"
            assert message["data"]["avatarUrl"] == "https://cdn.example.com/b.png"

    def test_disconnect_leaves_rooms(self, client):
        with client.websocket_connect("/ws") as ws:
            self.join_room(ws, 3)
            health = client.get("api/health").json()
            assert health["activeRooms"] == 1
            assert health["activeConnections"] == 1

        health = client.get("api/health").json()
        assert health["activeRooms"] == 0
        assert health["activeConnections"] == 0


class TestBuzzerEvents:

    def test_first_buzz_wins(self, client):
        with client.websocket_connect("/ws") as host, client.websocket_connect("/ws") as player:
            self.join(host, 4)
            self.join(player, 4)

            host.send_json({"event": "enable-buzzer", "data": {"gameId": 4, "startTime": 1000}})
            assert host.receive_json()["event"] == "buzzer-enabled"
            assert player.receive_json()["event"] == "buzzer-enabled"

            player.send_json({"event": "buzz-in", "data": {
                "gameId": 4, "playerId": 1, "playerName": "Alice", "timeFromStart": 850
            }})
            success = player.receive_json()
            assert success["event"] == "buzz-success"
            assert success["data"]["isFirst"] is True

            first = host.receive_json()
            while first["event"] != "first-buzz":
                first = host.receive_json()
            assert first["data"]["playerName"] == "Alice"

            player.send_json({"event": "buzz-in", "data": {"gameId": 4, "playerId": 2}})
            failed = player.receive_json()
            while failed["event"] != "buzz-failed":
                failed = player.receive_json()
            assert failed["data"]["reason"] == "Buzzer not active"

    def test_buzz_in_unknown_room(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "buzz-in", "data": {"gameId": 77, "playerId": 1}})
            message = ws.receive_json()
            assert message["event"] == "buzz-failed"

    def test_reset_from_http(self, client):
        with client.websocket_connect("/ws") as ws:
            self.join(ws, 8)
            response = client.post("api/realtime/emit", json={"event": "reset-buzzer", "data": {"gameId": 8}})
            assert response.json() == {"success": True, "delivered": 1}

            message = ws.receive_json()
            assert message["event"] == "buzz-reset"
            assert message["data"] == {"gameId": "8"}

    def join(self, ws, game_id):
        ws.send_json({"event": "join-game", "data": {"gameId": game_id}})
        assert ws.receive_json()["event"] == "game-state-update"
