import pytest


@pytest.fixture
def group_id(client, auth_headers, premium_user):
    r = client.post("/groups", json={"title": "Ciclistas"}, headers=auth_headers(premium_user))
    return r.json()["id"]


def new_post(client, headers, group_id, title="Salida domingo"):
    return client.post(f"/groups/{group_id}/posts", json={"title": title, "description": " 9:00 "}, headers=headers)


def test_any_tier_can_post_as_author(client, auth_headers, group_id, free_user, basic_user):
    for user in (free_user, basic_user):
        r = new_post(client, auth_headers(user), group_id)
        assert r.status_code == 201
        assert r.json()["author_id"] == user.id
        assert r.json()["description"] == "9:00"

    r = client.get(f"/groups/{group_id}/posts", headers=auth_headers(free_user))
    assert [p["author_id"] for p in r.json()] == [free_user.id, basic_user.id]


def test_only_author_updates_post(client, auth_headers, group_id, free_user, make_user):
    post_id = new_post(client, auth_headers(free_user), group_id).json()["id"]
    stranger = make_user()

    r = client.put(f"/posts/{post_id}", json={"title": "Otra"}, headers=auth_headers(stranger))
    assert r.status_code == 403

    r = client.put(f"/posts/{post_id}", json={"title": "Salida sábado"}, headers=auth_headers(free_user))
    assert r.status_code == 200
    assert r.json()["title"] == "Salida sábado"


def test_admin_deletes_any_post(client, auth_headers, group_id, free_user, basic_user, admin):
    post_id = new_post(client, auth_headers(free_user), group_id).json()["id"]

    assert client.delete(f"/posts/{post_id}", headers=auth_headers(basic_user)).status_code == 403
    r = client.delete(f"/posts/{post_id}", headers=auth_headers(admin))
    assert r.json() == {"ok": True, "deleted_post_id": post_id}
    assert client.get(f"/posts/{post_id}", headers=auth_headers(admin)).status_code == 404


def test_show_post(client, auth_headers, group_id, free_user, basic_user):
    post_id = new_post(client, auth_headers(free_user), group_id).json()["id"]
    r = client.get(f"/posts/{post_id}", headers=auth_headers(basic_user))
    assert r.status_code == 200
    assert r.json()["group_id"] == group_id


def test_post_in_missing_group(client, auth_headers, free_user):
    assert new_post(client, auth_headers(free_user), 999).status_code == 404


def test_post_write_failure_maps_to_503(client, auth_headers, group_id, free_user, monkeypatch):
    from sqlalchemy.exc import OperationalError
    from sqlalchemy.orm import Session

    def broken_commit(self):
        raise OperationalError("INSERT INTO posts", {}, Exception("disk I/O error"))

    monkeypatch.setattr(Session, "commit", broken_commit)
    r = new_post(client, auth_headers(free_user), group_id)
    assert r.status_code == 503

    monkeypatch.undo()
    r = client.get(f"/groups/{group_id}/posts", headers=auth_headers(free_user))
    assert r.json() == []


def test_comments_on_post(client, auth_headers, group_id, free_user, basic_user):
    post_id = new_post(client, auth_headers(free_user), group_id).json()["id"]

    r = client.post(f"/posts/{post_id}/comments", json={"body": " ¡Me apunto! "}, headers=auth_headers(basic_user))
    assert r.status_code == 201
    assert r.json()["author_id"] == basic_user.id
    assert r.json()["body"] == "¡Me apunto!"

    client.post(f"/posts/{post_id}/comments", json={"body": "Yo también"}, headers=auth_headers(free_user))

    r = client.get(f"/posts/{post_id}/comments", headers=auth_headers(free_user))
    assert r.status_code == 200
    assert [c["body"] for c in r.json()] == ["¡Me apunto!", "Yo también"]


def test_blank_comment_is_rejected(client, auth_headers, group_id, free_user):
    post_id = new_post(client, auth_headers(free_user), group_id).json()["id"]
    r = client.post(f"/posts/{post_id}/comments", json={"body": "   "}, headers=auth_headers(free_user))
    assert r.status_code == 400
    assert client.post("/posts/999/comments", json={"body": "x"}, headers=auth_headers(free_user)).status_code == 404


def test_deleting_post_removes_comments(client, db, auth_headers, group_id, free_user):
    from sqlalchemy import select

    from app.models.comment import Comment

    post_id = new_post(client, auth_headers(free_user), group_id).json()["id"]
    client.post(f"/posts/{post_id}/comments", json={"body": "hola"}, headers=auth_headers(free_user))

    assert client.delete(f"/posts/{post_id}", headers=auth_headers(free_user)).status_code == 200
    db.expire_all()
    assert db.execute(select(Comment).where(Comment.post_id == post_id)).first() is None
