import pytest

from casebook import crud
from casebook.models.quests import QuestStatus


@pytest.fixture
def open_quest(client, headers):
    def create(user, title="How do you keep prompts versioned?", content="Looking for a workflow that scales.") -> int:
        res = client.post("/api/quests/", json={"title": title, "content": content}, headers=headers(user))
        assert res.status_code == 201, res.text
        return res.json()["id"]
    return create


@pytest.fixture
def answer(client, headers):
    def post(user, quest_id, content="Keep them in git next to the code.") -> int:
        res = client.post(f"/api/quests/{quest_id}/answers", json={"content": content}, headers=headers(user))
        assert res.status_code == 201, res.text
        return res.json()["id"]
    return post


def test_quest_list_is_newest_first_with_answer_counts(client, make_user, open_quest, answer):
    alice, bob = make_user("alice"), make_user("bob")
    first = open_quest(alice, title="First question")
    second = open_quest(alice, title="Second question")
    answer(bob, first)

    quests = client.get("/api/quests/").json()
    assert [q["id"] for q in quests] == [second, first]
    assert quests[0]["status"] == "open"
    assert quests[0]["answerCount"] == 0
    assert quests[1]["answerCount"] == 1
    assert quests[1]["authorName"] == "alice"


def test_quest_list_filters_by_status(client, make_user, headers, open_quest):
    alice = make_user("alice")
    keep_open = open_quest(alice)
    suspended = open_quest(alice)
    client.post(f"/api/quests/{suspended}/close", json={"status": "suspended"}, headers=headers(alice))

    open_only = client.get("/api/quests/", params={"status": "open"}).json()
    assert [q["id"] for q in open_only] == [keep_open]


def test_get_by_id_returns_answers_in_posting_order(client, make_user, open_quest, answer):
    alice, bob, carol = make_user("alice"), make_user("bob", avatar_url="https://cdn.test/bob.png"), make_user("carol")
    quest_id = open_quest(alice)
    first = answer(bob, quest_id, "Use a prompt registry.")
    second = answer(carol, quest_id, "Tag releases.")

    body = client.get(f"/api/quests/{quest_id}").json()
    assert body["quest"]["id"] == quest_id
    assert body["quest"]["answerCount"] == 2
    assert [a["id"] for a in body["answers"]] == [first, second]
    assert body["answers"][0]["authorName"] == "bob"
    assert body["answers"][0]["authorAvatarUrl"] == "https://cdn.test/bob.png"


def test_get_unknown_quest(client):
    assert client.get("/api/quests/404").status_code == 404


def test_create_quest_validation(client, make_user, headers):
    alice = make_user("alice")
    res = client.post("/api/quests/", json={"title": "", "content": "x"}, headers=headers(alice))
    assert res.status_code == 422

    anonymous = client.post("/api/quests/", json={"title": "t", "content": "c"})
    assert anonymous.status_code == 401


def test_finish_with_solver_then_reject_new_answers(client, make_user, headers, open_quest, answer):
    alice, bob, carol, dave = (make_user(n) for n in ("alice", "bob", "carol", "dave"))
    quest_id = open_quest(alice)
    bob_answer = answer(bob, quest_id)
    answer(carol, quest_id)

    res = client.post(
        f"/api/quests/{quest_id}/close",
        json={"status": "finished", "solvedAnswerId": bob_answer},
        headers=headers(alice),
    )
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["alreadyClosed"] is False
    assert body["quest"]["status"] == "finished"
    assert body["quest"]["solvedAnswerId"] == bob_answer
    assert body["quest"]["solverUserId"] == bob.id
    assert body["quest"]["closedAt"] is not None

    late = client.post(f"/api/quests/{quest_id}/answers", json={"content": "Too late?"}, headers=headers(dave))
    assert late.status_code == 400


def test_finish_without_answers_is_rejected(client, make_user, headers, open_quest, db):
    alice = make_user("alice")
    quest_id = open_quest(alice)

    res = client.post(
        f"/api/quests/{quest_id}/close",
        json={"status": "finished", "solvedAnswerId": 1},
        headers=headers(alice),
    )
    assert res.status_code == 400
    assert crud.get_quest_view(db, quest_id)["status"] is QuestStatus.open


def test_finish_requires_solved_answer_id(client, make_user, headers, open_quest, answer):
    alice, bob = make_user("alice"), make_user("bob")
    quest_id = open_quest(alice)
    answer(bob, quest_id)

    res = client.post(f"/api/quests/{quest_id}/close", json={"status": "finished"}, headers=headers(alice))
    assert res.status_code == 422


def test_finish_with_answer_from_another_quest_is_rejected(client, make_user, headers, open_quest, answer):
    alice, bob = make_user("alice"), make_user("bob")
    quest_id = open_quest(alice)
    other_quest = open_quest(bob)
    answer(bob, quest_id)
    foreign_answer = answer(alice, other_quest)

    res = client.post(
        f"/api/quests/{quest_id}/close",
        json={"status": "finished", "solvedAnswerId": foreign_answer},
        headers=headers(alice),
    )
    assert res.status_code == 400


def test_solved_answer_not_allowed_for_other_outcomes(client, make_user, headers, open_quest, answer):
    alice, bob = make_user("alice"), make_user("bob")
    quest_id = open_quest(alice)
    bob_answer = answer(bob, quest_id)

    res = client.post(
        f"/api/quests/{quest_id}/close",
        json={"status": "unsolved", "solvedAnswerId": bob_answer},
        headers=headers(alice),
    )
    assert res.status_code == 422


def test_only_author_can_close(client, make_user, headers, open_quest):
    alice, bob = make_user("alice"), make_user("bob")
    quest_id = open_quest(alice)

    res = client.post(f"/api/quests/{quest_id}/close", json={"status": "unsolved"}, headers=headers(bob))
    assert res.status_code == 403


def test_reclosing_reports_already_closed_and_changes_nothing(client, make_user, headers, open_quest, answer):
    alice, bob = make_user("alice"), make_user("bob")
    quest_id = open_quest(alice)
    bob_answer = answer(bob, quest_id)

    first = client.post(
        f"/api/quests/{quest_id}/close",
        json={"status": "finished", "solvedAnswerId": bob_answer},
        headers=headers(alice),
    ).json()

    again = client.post(f"/api/quests/{quest_id}/close", json={"status": "suspended"}, headers=headers(alice))
    assert again.status_code == 200
    body = again.json()
    assert body["alreadyClosed"] is True
    assert body["quest"]["status"] == "finished"
    assert body["quest"]["solvedAnswerId"] == bob_answer
    assert body["quest"]["solverUserId"] == bob.id
    assert body["quest"]["closedAt"] == first["quest"]["closedAt"]


@pytest.mark.parametrize("outcome", ["suspended", "unsolved"])
def test_close_without_solver(client, make_user, headers, open_quest, outcome):
    alice = make_user("alice")
    quest_id = open_quest(alice)

    body = client.post(f"/api/quests/{quest_id}/close", json={"status": outcome}, headers=headers(alice)).json()
    assert body["quest"]["status"] == outcome
    assert body["quest"]["solvedAnswerId"] is None
    assert body["quest"]["solverUserId"] is None


def test_close_quest_is_conditional_on_open(db, make_user):
    alice = make_user("alice")
    quest = crud.create_quest(db, alice.id, "Title", "Content")

    assert crud.close_quest(db, quest.id, QuestStatus.unsolved, None, None) is True
    assert crud.close_quest(db, quest.id, QuestStatus.suspended, None, None) is False
    assert crud.get_quest_view(db, quest.id)["status"] is QuestStatus.unsolved


def test_close_quest_rejects_open_as_target(db, make_user):
    alice = make_user("alice")
    quest = crud.create_quest(db, alice.id, "Title", "Content")

    with pytest.raises(ValueError):
        crud.close_quest(db, quest.id, QuestStatus.open, None, None)


def test_losing_a_close_race_reports_the_stored_outcome(session_factory, make_user):
    alice = make_user("alice")
    first, second = session_factory(), session_factory()
    try:
        quest_id = crud.create_quest(first, alice.id, "Title", "Content").id
        assert crud.get_quest(first, quest_id).status is QuestStatus.open

        assert crud.close_quest(second, quest_id, QuestStatus.suspended, None, None) is True

        assert crud.close_quest(first, quest_id, QuestStatus.unsolved, None, None) is False
        view = crud.get_quest_view(first, quest_id)
        assert view["status"] is QuestStatus.suspended
        assert view["closed_at"] is not None
    finally:
        first.close()
        second.close()
