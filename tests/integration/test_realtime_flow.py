"""WebSocket collaboration end to end through the real app."""

import pytest
from starlette.websockets import WebSocketDisconnect


def send(ws, event, **data):
    ws.send_json({"event": event, "data": data})


def join(ws, note_id):
    send(ws, "join_note", noteId=note_id)
    return ws.receive_json()


@pytest.fixture
def shared_note(client, register, auth):
    """Alice owns a note; Bob is an editor and Carol a viewer."""
    tokens = {}
    for name in ("Alice", "Bob", "Carol"):
        tokens[name.lower()], _ = register(name)

    note = client.post(
        "/api/notes", json={"title": "Plan", "content": "v1"}, headers=auth(tokens["alice"])
    ).json()
    for email, role in (("bob@example.com", "editor"), ("carol@example.com", "viewer")):
        response = client.post(
            f"/api/notes/{note['id']}/share",
            json={"email": email, "role": role},
            headers=auth(tokens["alice"]),
        )
        assert response.status_code == 200
    return note, tokens


class TestConnectionAuth:
    def test_missing_credential_is_rejected(self, client):
        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json() == {"event": "error_message", "data": {"message": "Unauthorized"}}
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()
        assert exc_info.value.code == 4401

    def test_bad_credential_is_rejected(self, client):
        with client.websocket_connect("/ws?token=garbage") as ws:
            assert ws.receive_json()["data"]["message"] == "Unauthorized"
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()
        assert exc_info.value.code == 4401

    def test_authorization_header_is_accepted(self, client, shared_note):
        note, tokens = shared_note
        headers = {"Authorization": f"Bearer {tokens['alice']}"}
        with client.websocket_connect("/ws", headers=headers) as ws:
            message = join(ws, note["id"])
        assert message["event"] == "server_note_init"
        assert message["data"]["access"] == "owner"


class TestCollaboration:
    def test_editor_update_reaches_everyone(self, client, shared_note):
        note, tokens = shared_note
        with client.websocket_connect(f"/ws?token={tokens['alice']}") as alice, \
                client.websocket_connect(f"/ws?token={tokens['bob']}") as bob, \
                client.websocket_connect(f"/ws?token={tokens['carol']}") as carol:
            assert join(alice, note["id"])["data"]["access"] == "owner"
            assert join(bob, note["id"])["data"]["access"] == "editor"
            init = join(carol, note["id"])
            assert init["event"] == "server_note_init"
            assert init["data"]["content"] == "v1"

            send(bob, "client_note_update", noteId=note["id"], content="hello")

            received = {
                "alice": alice.receive_json(),
                "bob": bob.receive_json(),
                "carol": carol.receive_json(),
            }
            for message in received.values():
                assert message["event"] == "server_note_update"
                assert message["data"]["content"] == "hello"
                assert message["data"]["title"] == "Plan"
            assert received["carol"]["data"]["access"] == "viewer"
            assert received["bob"]["data"]["access"] == "editor"

    def test_viewer_update_is_silently_dropped(self, client, shared_note, auth):
        note, tokens = shared_note
        with client.websocket_connect(f"/ws?token={tokens['alice']}") as alice, \
                client.websocket_connect(f"/ws?token={tokens['carol']}") as carol:
            join(alice, note["id"])
            join(carol, note["id"])

            send(carol, "client_note_update", noteId=note["id"], content="vandalism")
            # frames are processed in order, so the update is done once this init arrives
            assert join(carol, note["id"])["data"]["content"] == "v1"

            send(alice, "client_note_update", noteId=note["id"], title="Owner edit")
            assert alice.receive_json()["data"]["title"] == "Owner edit"
            assert carol.receive_json()["data"]["content"] == "v1"

        stored = client.get(f"/api/notes/{note['id']}", headers=auth(tokens["alice"])).json()
        assert stored["content"] == "v1"

    def test_join_errors(self, client, shared_note, register):
        note, _ = shared_note
        mallory_token, _ = register("Mallory")
        with client.websocket_connect(f"/ws?token={mallory_token}") as ws:
            assert join(ws, note["id"]) == {
                "event": "error_message",
                "data": {"message": "No access to this note"},
            }
            assert join(ws, "not-a-note")["data"]["message"] == "Note not found"

    def test_malformed_frames_are_ignored(self, client, shared_note):
        note, tokens = shared_note
        with client.websocket_connect(f"/ws?token={tokens['alice']}") as ws:
            ws.send_text("not json")
            ws.send_json({"event": "typing", "data": {}})
            assert join(ws, note["id"])["event"] == "server_note_init"

    def test_rest_update_is_broadcast(self, client, shared_note, auth):
        note, tokens = shared_note
        with client.websocket_connect(f"/ws?token={tokens['carol']}") as carol:
            join(carol, note["id"])

            response = client.put(
                f"/api/notes/{note['id']}", json={"content": "from REST"},
                headers=auth(tokens["bob"]),
            )
            assert response.status_code == 200

            message = carol.receive_json()
            assert message["event"] == "server_note_update"
            assert message["data"]["content"] == "from REST"
            assert message["data"]["access"] == "viewer"

    def test_left_member_stops_receiving(self, client, shared_note):
        note, tokens = shared_note
        with client.websocket_connect(f"/ws?token={tokens['alice']}") as alice, \
                client.websocket_connect(f"/ws?token={tokens['bob']}") as bob:
            join(alice, note["id"])
            join(bob, note["id"])

            send(bob, "leave_note", noteId=note["id"])
            # confirms the leave was handled before alice edits
            assert join(bob, "not-a-note")["event"] == "error_message"

            send(alice, "client_note_update", noteId=note["id"], content="alone")
            assert alice.receive_json()["data"]["content"] == "alone"

            # had bob still been a member, the update would arrive before this init
            init = join(bob, note["id"])
            assert init["event"] == "server_note_init"
            assert init["data"]["content"] == "alone"

    def test_deleted_note_cannot_be_joined(self, client, shared_note, auth):
        note, tokens = shared_note
        assert client.delete(f"/api/notes/{note['id']}", headers=auth(tokens["alice"])).status_code == 200

        with client.websocket_connect(f"/ws?token={tokens['bob']}") as bob:
            assert join(bob, note["id"])["data"]["message"] == "Note not found"
