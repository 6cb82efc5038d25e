import httpx
from httpx import AsyncClient
from fastapi import status
import pytest

YT = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def _client(app) -> AsyncClient:
    return AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_full_review_flow(app, seed, headers):
    submitter, reviewer = await seed.user(), await seed.reviewer()
    level = await seed.level(name="Sakupen Circles")
    async with _client(app) as ac:
        r = await ac.post("/aredl/submissions", headers=headers(submitter),
                          json={"level_id": str(level.id), "video_url": "https://youtu.be/dQw4w9WgXcQ", "mobile": True})
        assert r.status_code == status.HTTP_201_CREATED, r.text
        sub = r.json()
        assert sub["status"] == "Pending"
        assert sub["video_url"] == YT
        assert "private_reviewer_notes" not in sub

        r = await ac.get(f"/aredl/submissions/{sub['id']}/queue", headers=headers(submitter))
        assert r.json() == {"position": 1, "total": 1}

        r = await ac.post("/aredl/submissions/claim", headers=headers(reviewer))
        assert r.status_code == 200, r.text
        assert r.json()["id"] == sub["id"]
        assert r.json()["reviewer_id"] == str(reviewer.id)

        r = await ac.post(f"/aredl/submissions/{sub['id']}/accept", headers=headers(reviewer), json={"notes": "GG"})
        assert r.status_code == 200, r.text
        record = r.json()
        assert record["submitted_by"] == str(submitter.id)
        assert record["mobile"] is True

        r = await ac.get(f"/aredl/submissions/{sub['id']}", headers=headers(submitter))
        assert r.status_code == 404

        r = await ac.get(f"/aredl/submissions/{sub['id']}/history", headers=headers(reviewer))
        assert [h["status"] for h in r.json()] == ["Accepted", "Claimed", "Pending"]
        assert r.json()[0]["record_id"] == record["id"]


@pytest.mark.asyncio
async def test_errors_map_to_status_codes(app, seed, headers):
    submitter, stranger, reviewer = await seed.user(), await seed.user(), await seed.reviewer()
    level = await seed.level()
    async with _client(app) as ac:
        body = {"level_id": str(level.id), "video_url": YT}
        r = await ac.post("/aredl/submissions", headers=headers(submitter), json=body)
        sid = r.json()["id"]

        r = await ac.post("/aredl/submissions", headers=headers(submitter), json=body)
        assert r.status_code == 409
        assert r.json() == {"detail": "You already have a submission for this level"}

        r = await ac.post("/aredl/submissions", headers=headers(stranger),
                          json={**body, "video_url": "https://example.com/v.mp4"})
        assert r.status_code == 400

        r = await ac.patch(f"/aredl/submissions/{sid}", headers=headers(submitter), json={})
        assert r.status_code == 400
        assert r.json()["detail"] == "No changes were provided!"

        r = await ac.get(f"/aredl/submissions/{sid}", headers=headers(stranger))
        assert r.status_code == 403

        r = await ac.post(f"/aredl/submissions/{sid}/deny", headers=headers(stranger))
        assert r.status_code == 403

        r = await ac.post(f"/aredl/submissions/{sid}/unclaim", headers=headers(reviewer))
        assert r.status_code == 409

        r = await ac.post("/aredl/submissions/claim", headers=headers(submitter))
        assert r.status_code == 403


@pytest.mark.asyncio
async def test_missing_or_bad_token(app, seed):
    async with _client(app) as ac:
        r = await ac.post("/aredl/submissions/claim")
        assert r.status_code in (401, 403)
        r = await ac.post("/aredl/submissions/claim", headers={"Authorization": "Bearer nope"})
        assert r.status_code == 401


@pytest.mark.asyncio
async def test_toggle_submissions(app, seed, headers):
    admin, reviewer, user = await seed.user(privilege=100), await seed.reviewer(), await seed.user()
    level = await seed.level()
    async with _client(app) as ac:
        r = await ac.get("/aredl/submissions/status")
        assert r.json() == {"list_id": "aredl", "enabled": True}

        r = await ac.post("/aredl/submissions/status", headers=headers(reviewer), json={"enabled": False})
        assert r.status_code == 403

        r = await ac.post("/aredl/submissions/status", headers=headers(admin), json={"enabled": False})
        assert r.status_code == 200
        assert (await ac.get("/aredl/submissions/status")).json()["enabled"] is False
        assert (await ac.get("/arepl/submissions/status")).json()["enabled"] is True

        r = await ac.post("/aredl/submissions", headers=headers(user), json={"level_id": str(level.id), "video_url": YT})
        assert r.status_code == 400
        assert r.json()["detail"] == "Submissions are currently disabled"


@pytest.mark.asyncio
async def test_private_notes_only_for_reviewers(app, seed, headers):
    submitter, reviewer = await seed.user(), await seed.reviewer()
    level = await seed.level()
    async with _client(app) as ac:
        r = await ac.post("/aredl/submissions", headers=headers(submitter), json={"level_id": str(level.id), "video_url": YT})
        sid = r.json()["id"]
        await ac.post("/aredl/submissions/claim", headers=headers(reviewer))
        r = await ac.post(f"/aredl/submissions/{sid}/deny", headers=headers(reviewer),
                          json={"notes": "Missing clicks", "private_notes": "alt account?"})
        assert r.status_code == 200
        assert r.json()["private_reviewer_notes"] == "alt account?"

        mine = (await ac.get(f"/aredl/submissions/{sid}", headers=headers(submitter))).json()
        assert mine["status"] == "Denied"
        assert mine["reviewer_notes"] == "Missing clicks"
        assert mine["private_reviewer_notes"] is None

        theirs = (await ac.get(f"/aredl/submissions/{sid}", headers=headers(reviewer))).json()
        assert theirs["private_reviewer_notes"] == "alt account?"


@pytest.mark.asyncio
async def test_list_and_delete(app, seed, headers):
    submitter, other, reviewer = await seed.user(), await seed.user(), await seed.reviewer()
    a, b = await seed.level(), await seed.level()
    async with _client(app) as ac:
        r = await ac.post("/aredl/submissions", headers=headers(submitter), json={"level_id": str(a.id), "video_url": YT})
        sid = r.json()["id"]
        await ac.post("/aredl/submissions", headers=headers(other), json={"level_id": str(b.id), "video_url": YT})

        assert len((await ac.get("/aredl/submissions", headers=headers(submitter))).json()) == 1
        assert len((await ac.get("/aredl/submissions", headers=headers(reviewer))).json()) == 2
        assert (await ac.get("/aredl/submissions/queue")).json() == {"list_id": "aredl", "pending": 2}

        r = await ac.delete(f"/aredl/submissions/{sid}", headers=headers(other))
        assert r.status_code == 403
        r = await ac.delete(f"/aredl/submissions/{sid}", headers=headers(submitter))
        assert r.status_code == 204
        assert (await ac.get("/aredl/submissions/queue")).json()["pending"] == 1
