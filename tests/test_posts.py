from models.post import Like, Post
from repositories.post_repository import PostRepository
from services.post_service import PostService


def create_post(client, headers, content="hello"):
    response = client.post("/api/posts", headers=headers, json={"content": content, "images": []})
    assert response.status_code == 200, response.text
    return response.json()["postId"]


def test_unverified_user_cannot_post(client, make_user, auth_headers, db):
    response = client.post("/api/posts", headers=auth_headers(make_user()), json={"content": "hi"})
    assert response.status_code == 200
    assert response.json() == {"success": False, "message": "请先完成实名认证", "needVerify": True}
    db.expire_all()
    assert db.query(Post).count() == 0


def test_verified_user_posts(client, make_user, auth_headers):
    headers = auth_headers(make_user(verified=True))
    response = client.post("/api/posts", headers=headers,
                           json={"content": "第一条", "images": ["http://img/1.png"]})
    body = response.json()
    assert body["success"] is True
    assert body["needVerify"] is False

    detail = client.get(f"/api/posts/{body['postId']}").json()
    assert detail["content"] == "第一条"
    assert detail["images"] == ["http://img/1.png"]
    assert detail["likeCount"] == 0
    assert detail["comments"] == []


def test_too_many_images_rejected(client, make_user, auth_headers):
    response = client.post("/api/posts", headers=auth_headers(make_user(verified=True)),
                           json={"content": "x", "images": [f"http://img/{i}.png" for i in range(10)]})
    assert response.status_code == 422


def test_feed_is_newest_first_with_cursor(client, make_user, auth_headers):
    headers = auth_headers(make_user(verified=True))
    ids = [create_post(client, headers, f"post {i}") for i in range(3)]

    page = client.get("/api/posts", params={"limit": 2}).json()
    assert [p["id"] for p in page["items"]] == [ids[2], ids[1]]
    assert page["nextCursor"] == ids[1]

    rest = client.get("/api/posts", params={"limit": 2, "cursor": page["nextCursor"]}).json()
    assert [p["id"] for p in rest["items"]] == [ids[0]]
    assert rest["nextCursor"] is None


def test_zero_cursor_is_not_ignored(db, make_user):
    author = make_user(verified=True)
    db.add(Post(user_id=author.id, content="only", images=[]))
    db.commit()

    assert PostRepository.list_posts(db, limit=10, cursor=0) == []
    assert len(PostRepository.list_posts(db, limit=10, cursor=None)) == 1


def test_feed_item_author_is_public(client, make_user, auth_headers):
    author = make_user(verified=True, nickname="作者")
    create_post(client, auth_headers(author))

    item = client.get("/api/posts").json()["items"][0]
    assert item["user"]["id"] == author.id
    assert item["user"]["nickname"] == "作者"
    assert "phone" not in item["user"]
    assert item["isLiked"] is False


def test_like_toggle(client, make_user, auth_headers):
    author = auth_headers(make_user(verified=True))
    fan = auth_headers(make_user())
    other = auth_headers(make_user())
    post_id = create_post(client, author)

    liked = client.post(f"/api/posts/{post_id}/like", headers=fan).json()
    assert liked == {"isLiked": True, "likeCount": 1}
    assert client.post(f"/api/posts/{post_id}/like", headers=other).json() == {"isLiked": True, "likeCount": 2}

    feed = client.get("/api/posts", headers=fan).json()
    assert feed["items"][0]["isLiked"] is True

    unliked = client.post(f"/api/posts/{post_id}/like", headers=fan).json()
    assert unliked == {"isLiked": False, "likeCount": 1}


def test_like_missing_post(client, make_user, auth_headers):
    response = client.post("/api/posts/999/like", headers=auth_headers(make_user()))
    assert response.status_code == 404


def test_like_counter_never_goes_negative(db, make_user):
    author = make_user(verified=True)
    fan = make_user()
    post = PostRepository.create_post(db, user_id=author.id, content="x", images=[])
    db.add(Like(user_id=fan.id, post_id=post.id))
    db.commit()

    result = PostService.toggle_like(db, fan, post.id)
    assert result == {"is_liked": False, "like_count": 0}


def test_comments_and_replies(client, make_user, auth_headers):
    author = make_user(verified=True)
    commenter = make_user(nickname="评论者")
    replier = make_user()
    post_id = create_post(client, auth_headers(author))

    first = client.post(f"/api/posts/{post_id}/comments", headers=auth_headers(commenter),
                        json={"content": "不错"}).json()
    assert first["success"] is True

    client.post(f"/api/posts/{post_id}/comments", headers=auth_headers(replier),
                json={"content": "同意", "parentId": first["commentId"]})

    detail = client.get(f"/api/posts/{post_id}").json()
    assert detail["commentCount"] == 2
    newest, oldest = detail["comments"]
    assert oldest["content"] == "不错"
    assert oldest["replyToUser"] is None
    assert newest["parentId"] == first["commentId"]
    assert newest["replyToUser"]["id"] == commenter.id
    assert newest["user"]["id"] == replier.id


def test_reply_to_comment_on_another_post_rejected(client, make_user, auth_headers):
    headers = auth_headers(make_user(verified=True))
    first_post = create_post(client, headers)
    second_post = create_post(client, headers)
    comment = client.post(f"/api/posts/{first_post}/comments", headers=headers, json={"content": "a"}).json()

    response = client.post(f"/api/posts/{second_post}/comments", headers=headers,
                           json={"content": "b", "parentId": comment["commentId"]})
    assert response.status_code == 400


def test_comment_on_missing_post(client, make_user, auth_headers):
    response = client.post("/api/posts/404/comments", headers=auth_headers(make_user()), json={"content": "a"})
    assert response.status_code == 404


def test_delete_post(client, make_user, auth_headers):
    owner = auth_headers(make_user(verified=True))
    stranger = auth_headers(make_user())
    post_id = create_post(client, owner)
    client.post(f"/api/posts/{post_id}/like", headers=stranger)
    client.post(f"/api/posts/{post_id}/comments", headers=stranger, json={"content": "x"})

    assert client.delete(f"/api/posts/{post_id}", headers=stranger).status_code == 403
    assert client.delete(f"/api/posts/{post_id}", headers=owner).json() == {"success": True}
    assert client.get(f"/api/posts/{post_id}").status_code == 404


def test_user_posts(client, make_user, auth_headers):
    alice = make_user(verified=True)
    bob = make_user(verified=True)
    create_post(client, auth_headers(alice), "alice")
    create_post(client, auth_headers(bob), "bob")

    page = client.get(f"/api/users/{alice.id}/posts").json()
    assert [p["content"] for p in page["items"]] == ["alice"]


def test_search(client, make_user, auth_headers):
    author = make_user(verified=True, nickname="旅行家")
    make_user(nickname="程序员")
    create_post(client, auth_headers(author), "去杭州旅行")
    create_post(client, auth_headers(author), "今天加班")

    result = client.get("/api/search", params={"keyword": "旅行"}).json()
    assert [u["nickname"] for u in result["users"]] == ["旅行家"]
    assert [p["content"] for p in result["posts"]] == ["去杭州旅行"]


def test_search_requires_keyword(client):
    assert client.get("/api/search").status_code == 422
