"""
Tests for profiles, public profile pages and account deletion.
"""
import pytest

from watchwise.models.item import Item
from watchwise.models.profile import Profile
from watchwise.models.social import Reaction, Comment
from watchwise.models.suppression import Hidden, MutedUser
from watchwise.models.user import User
from watchwise.models.user_item import UserItem
from watchwise.extensions import db
from watchwise.utils.account_service import DELETE_PHRASE, USERNAME_RE, ensure_profile


# ── Profile ───────────────────────────────────────────────────────────────────

class TestProfile:

    def test_lazy_default_username(self, app, client):
        client.post("/api/auth/register", json={"email": "Lee.Smith@watchwise.io", "password": "long-enough-pw"})
        profile = client.get("/api/profile").get_json()["profile"]
        assert profile["username"] == f"lee.smith_{profile['user_id']}"
        assert profile["privacy_public"] is True

    def test_patch_fields(self, make_user, login):
        c = login(make_user("ana@watchwise.io", "ana"))
        resp = c.patch("/api/profile", json={
            "username": "ana.b", "avatar_url": "https://img.example.org/a.png", "privacy_public": False,
        })
        assert resp.status_code == 200
        profile = resp.get_json()["profile"]
        assert profile["username"] == "ana.b"
        assert profile["avatar_url"] == "https://img.example.org/a.png"
        assert profile["privacy_public"] is False

    def test_patch_leaves_absent_fields(self, make_user, login):
        c = login(make_user("ana@watchwise.io", "ana"))
        c.patch("/api/profile", json={"privacy_public": False})
        profile = c.patch("/api/profile", json={"avatar_url": None}).get_json()["profile"]
        assert profile["privacy_public"] is False
        assert profile["username"] == "ana"
        assert profile["avatar_url"] is None

    @pytest.mark.parametrize("username", ["ab", "x" * 33, "has space", "semi;colon", ""])
    def test_bad_username(self, make_user, login, username):
        c = login(make_user("ana@watchwise.io", "ana"))
        assert c.patch("/api/profile", json={"username": username}).status_code == 400

    def test_username_taken(self, make_user, login):
        make_user("bob@watchwise.io", "bob")
        c = login(make_user("ana@watchwise.io", "ana"))
        assert c.patch("/api/profile", json={"username": "BOB"}).status_code == 409

    def test_bad_avatar_url(self, make_user, login):
        c = login(make_user("ana@watchwise.io", "ana"))
        assert c.patch("/api/profile", json={"avatar_url": "not a url"}).status_code == 400

    def test_requires_login(self, client):
        assert client.get("/api/profile").status_code == 401
        assert client.patch("/api/profile", json={"username": "zed"}).status_code == 401


class TestDerivedUsername:

    @staticmethod
    def _user(email):
        user = User(email=email)
        user.set_password("long-enough-pw")
        db.session.add(user)
        db.session.commit()
        return user

    def test_strips_disallowed_characters(self, ctx):
        user = self._user("a+b@watchwise.io")
        assert ensure_profile(user).username == f"ab_{user.id}"

    def test_long_local_part_is_truncated(self, ctx):
        user = self._user("x" * 60 + "@watchwise.io")
        username = ensure_profile(user).username
        assert USERNAME_RE.match(username)
        assert username == "x" * 20 + f"_{user.id}"

    def test_invalid_requested_name_falls_back(self, ctx):
        user = self._user("kim@watchwise.io")
        assert ensure_profile(user, "k").username == f"kim_{user.id}"

    def test_collision_suffix_stays_valid(self, ctx):
        ensure_profile(self._user("one@watchwise.io"), "y" * 32)
        username = ensure_profile(self._user("two@watchwise.io"), "y" * 32).username
        assert username == "y" * 31 + "2"


class TestPublicProfile:

    def test_public_activity(self, client, make_user, add_entry):
        ana = make_user("ana@watchwise.io", "ana")
        for _ in range(45):
            add_entry(ana)
        body = client.get("/api/u/ANA").get_json()
        assert body["profile"]["username"] == "ana"
        assert len(body["activity"]) == 40
        assert body["is_owner"] is False

    def test_private_hides_activity(self, client, make_user, add_entry):
        shy = make_user("shy@watchwise.io", "shy", public=False)
        add_entry(shy)
        body = client.get("/api/u/shy").get_json()
        assert body["private"] is True
        assert body["activity"] is None

    def test_private_owner_sees_activity(self, make_user, add_entry, login):
        shy = make_user("shy@watchwise.io", "shy", public=False)
        add_entry(shy)
        body = login(shy).get("/api/u/shy").get_json()
        assert body["is_owner"] is True
        assert len(body["activity"]) == 1

    def test_unknown(self, client):
        assert client.get("/api/u/nobody").status_code == 404


# ── Account deletion ──────────────────────────────────────────────────────────

class TestDeleteAccount:

    @pytest.fixture
    def world(self, app, make_user, add_entry, login):
        """ana has a library, social activity and suppression rows; bob interacts with ana's entries."""
        ana = make_user("ana@watchwise.io", "ana")
        bo  = make_user("bob@watchwise.io", "bob")
        ana_ui = add_entry(ana, review="Mine")
        bo_ui  = add_entry(bo, review="Bo's")

        ana_c, bo_c = login(ana), login(bo)
        ana_c.post("/api/reactions", json={"user_item_id": bo_ui.id, "emoji": "👍"})
        ana_c.post("/api/comments", json={"user_item_id": bo_ui.id, "content": "ana on bo"})
        bo_c.post("/api/reactions", json={"user_item_id": ana_ui.id, "emoji": "🔥"})
        bo_c.post("/api/comments", json={"user_item_id": ana_ui.id, "content": "bo on ana"})
        ana_c.post("/api/feed/hide", json={"item_id": bo_ui.item_id})
        ana_c.post("/api/feed/mute", json={"muted_user_id": bo.id})
        bo_c.post("/api/feed/mute", json={"muted_user_id": ana.id})
        return ana, bo, ana_c, bo_c

    @pytest.mark.parametrize("confirm", [None, "", "delete my account", "DELETE MY ACCOUNT ", "yes"])
    def test_wrong_phrase_deletes_nothing(self, app, world, confirm):
        ana, _, ana_c, _ = world
        resp = ana_c.post("/api/account/delete", json={"confirm": confirm})
        assert resp.status_code == 400

        with app.app_context():
            assert User.query.filter_by(id=ana.id).count() == 1
            assert Profile.query.filter_by(user_id=ana.id).count() == 1
            assert UserItem.query.filter_by(user_id=ana.id).count() == 1
            assert Reaction.query.count() == 2
            assert Comment.query.count() == 2
            assert Hidden.query.count() == 1
            assert MutedUser.query.count() == 2

    def test_deletes_everything_owned(self, app, world):
        ana, bo, ana_c, _ = world
        resp = ana_c.post("/api/account/delete", json={"confirm": DELETE_PHRASE})
        assert resp.status_code == 200
        assert resp.get_json()["deleted"]["user_items"] == 1

        with app.app_context():
            assert User.query.filter_by(id=ana.id).count() == 0
            assert Profile.query.filter_by(user_id=ana.id).count() == 0
            assert UserItem.query.filter_by(user_id=ana.id).count() == 0
            assert Reaction.query.count() == 0
            assert Comment.query.count() == 0
            assert Hidden.query.count() == 0
            assert MutedUser.query.count() == 0
            # bob's account and library entry survive; cached items are shared
            assert User.query.filter_by(id=bo.id).count() == 1
            assert UserItem.query.filter_by(user_id=bo.id).count() == 1
            assert Item.query.count() == 2

    def test_session_ends(self, world):
        _, _, ana_c, _ = world
        ana_c.post("/api/account/delete", json={"confirm": DELETE_PHRASE})
        assert ana_c.get("/api/auth/me").status_code == 401

    def test_requires_login(self, client):
        assert client.post("/api/account/delete", json={"confirm": DELETE_PHRASE}).status_code == 401
