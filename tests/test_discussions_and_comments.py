from sqlmodel import select

from learning_platform.models import Comment, Discussion


def _create_discussion(client, headers, **fields):
    body = {"title": "Learning Tamil verbs", "content": "Any tips?", **fields}
    resp = client.post("/api/discussions/", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def _comment(client, headers, discussion_id, content="Nice", parent_id=None):
    body = {"discussion_id": discussion_id, "content": content, "parent_id": parent_id}
    return client.post("/api/comments/", json=body, headers=headers)


class TestDiscussions:
    def test_create_stores_author(self, client, student_headers, session):
        discussion_id = _create_discussion(
            client, student_headers, title="<i>Help</i> needed", tags=["grammar", "grammar", "tamil"]
        )
        discussion = session.get(Discussion, discussion_id)
        assert discussion.title == "Help needed"
        assert discussion.tags == ["grammar", "tamil"]
        assert discussion.author_name == "Nimal"
        assert discussion.author_role == "student"

    def test_missing_fields(self, client, student_headers):
        resp = client.post("/api/discussions/", json={"title": "No body"}, headers=student_headers)
        assert resp.status_code == 400

    def test_list_pinned_first_and_search(self, client, student_headers, teacher_headers):
        first = _create_discussion(client, student_headers, title="Old question")
        _create_discussion(client, student_headers, title="New question", tags=["Exams"])
        client.patch(f"/api/discussions/{first}/pin", json={"pinned": True}, headers=teacher_headers)

        listed = client.get("/api/discussions/", headers=student_headers).json()
        assert listed[0]["id"] == first
        assert listed[0]["is_pinned"] is True

        found = client.get("/api/discussions/?search=exams", headers=student_headers).json()
        assert [d["title"] for d in found] == ["New question"]

    def test_category_filter_and_meta(self, client, student_headers):
        _create_discussion(client, student_headers, category="Sinhala", tags=["verbs"])
        _create_discussion(client, student_headers, category="Maths", tags=["algebra", "verbs"])

        maths = client.get("/api/discussions/?category=Maths", headers=student_headers).json()
        assert len(maths) == 1
        assert client.get("/api/discussions/meta/categories", headers=student_headers).json() == ["Maths", "Sinhala"]
        assert client.get("/api/discussions/meta/tags", headers=student_headers).json() == ["algebra", "verbs"]

    def test_get_counts_views(self, client, student_headers):
        discussion_id = _create_discussion(client, student_headers)
        client.get(f"/api/discussions/{discussion_id}", headers=student_headers)
        assert client.get(f"/api/discussions/{discussion_id}", headers=student_headers).json()["views"] == 2

    def test_only_author_edits(self, client, student_headers, second_student, headers_for):
        discussion_id = _create_discussion(client, student_headers)
        resp = client.put(
            f"/api/discussions/{discussion_id}", json={"title": "Hijack"}, headers=headers_for(second_student.uid)
        )
        assert resp.status_code == 403
        resp = client.put(f"/api/discussions/{discussion_id}", json={"title": "Edited"}, headers=student_headers)
        assert resp.status_code == 200

    def test_like_toggles(self, client, student_headers):
        discussion_id = _create_discussion(client, student_headers)
        assert client.post(f"/api/discussions/{discussion_id}/like", headers=student_headers).json()["liked"] is True
        resp = client.post(f"/api/discussions/{discussion_id}/like", headers=student_headers).json()
        assert resp == {"liked": False, "likes_count": 0}

    def test_pin_and_lock_teacher_only(self, client, student_headers):
        discussion_id = _create_discussion(client, student_headers)
        resp = client.patch(f"/api/discussions/{discussion_id}/lock", json={"locked": True}, headers=student_headers)
        assert resp.status_code == 403

    def test_teacher_deletes_with_comments(self, client, student_headers, teacher_headers, session):
        discussion_id = _create_discussion(client, student_headers)
        _comment(client, student_headers, discussion_id)
        _comment(client, teacher_headers, discussion_id)

        assert client.delete(f"/api/discussions/{discussion_id}", headers=teacher_headers).status_code == 200
        session.expire_all()
        assert session.get(Discussion, discussion_id) is None
        assert session.exec(select(Comment)).all() == []


class TestComments:
    def test_comment_updates_counters(self, client, student_headers, session):
        discussion_id = _create_discussion(client, student_headers)
        parent_id = _comment(client, student_headers, discussion_id).json()["id"]
        resp = _comment(client, student_headers, discussion_id, content="Reply", parent_id=parent_id)
        assert resp.status_code == 201

        session.expire_all()
        assert session.get(Discussion, discussion_id).comments_count == 2
        assert session.get(Comment, parent_id).replies_count == 1
        count = client.get(f"/api/comments/discussion/{discussion_id}/count", headers=student_headers).json()
        assert count == {"count": 2}

    def test_tree(self, client, student_headers):
        discussion_id = _create_discussion(client, student_headers)
        first = _comment(client, student_headers, discussion_id, content="First").json()["id"]
        _comment(client, student_headers, discussion_id, content="Second")
        _comment(client, student_headers, discussion_id, content="Reply", parent_id=first)

        tree = client.get(f"/api/comments/discussion/{discussion_id}", headers=student_headers).json()
        assert [c["content"] for c in tree] == ["First", "Second"]
        assert [r["content"] for r in tree[0]["replies"]] == ["Reply"]

    def test_locked_discussion_rejects_comments(self, client, student_headers, teacher_headers):
        discussion_id = _create_discussion(client, student_headers)
        client.patch(f"/api/discussions/{discussion_id}/lock", json={"locked": True}, headers=teacher_headers)
        resp = _comment(client, student_headers, discussion_id)
        assert resp.status_code == 403
        assert resp.json() == {"error": "Discussion is locked"}

    def test_unknown_discussion(self, client, student_headers):
        assert _comment(client, student_headers, 42).status_code == 404

    def test_edit_marks_comment(self, client, student_headers, second_student, headers_for):
        discussion_id = _create_discussion(client, student_headers)
        comment_id = _comment(client, student_headers, discussion_id).json()["id"]

        other = headers_for(second_student.uid)
        assert client.put(f"/api/comments/{comment_id}", json={"content": "x"}, headers=other).status_code == 403

        client.put(f"/api/comments/{comment_id}", json={"content": "Updated"}, headers=student_headers)
        comment = client.get(f"/api/comments/{comment_id}", headers=student_headers).json()
        assert comment["content"] == "Updated"
        assert comment["is_edited"] is True

    def test_delete_removes_replies_and_decrements(self, client, student_headers, session):
        discussion_id = _create_discussion(client, student_headers)
        parent_id = _comment(client, student_headers, discussion_id).json()["id"]
        _comment(client, student_headers, discussion_id, parent_id=parent_id)
        _comment(client, student_headers, discussion_id, parent_id=parent_id)
        _comment(client, student_headers, discussion_id, content="Unrelated")

        assert client.delete(f"/api/comments/{parent_id}", headers=student_headers).status_code == 200
        session.expire_all()
        assert session.get(Discussion, discussion_id).comments_count == 1
        remaining = client.get(f"/api/comments/discussion/{discussion_id}", headers=student_headers).json()
        assert [c["content"] for c in remaining] == ["Unrelated"]

    def test_like_comment(self, client, student_headers, second_student, headers_for):
        discussion_id = _create_discussion(client, student_headers)
        comment_id = _comment(client, student_headers, discussion_id).json()["id"]
        client.post(f"/api/comments/{comment_id}/like", headers=student_headers)
        resp = client.post(f"/api/comments/{comment_id}/like", headers=headers_for(second_student.uid))
        assert resp.json() == {"liked": True, "likes_count": 2}
