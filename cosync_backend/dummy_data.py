from faker import Faker
import random
from datetime import timedelta
from sqlalchemy import delete
from core.database import SessionLocal, Base, engine
from models.user import User, GENDER_MALE, GENDER_FEMALE
from models.post import Post, Like, Comment
from models.conversation import Conversation, ConversationMember, Message, ConversationType, MessageType
from utils.timeutil import utcnow

USER_COUNT = 20
POSTS_PER_USER = 3

fake = Faker("zh_CN")

POST_TEMPLATES = [
    "今天去了{city}，风景真不错",
    "周末在{city}找到一家很好吃的店",
    "{city}的天气终于放晴了",
    "有人一起去{city}徒步吗",
    "刚搬到{city}，求推荐好去处",
]

def make_phone(index: int) -> str:
    prefixes = ["138", "139", "186", "177"]
    prefix = prefixes[index % len(prefixes)]
    return f"{prefix}{index:08d}"

def clear(db):
    for model in (Message, ConversationMember, Conversation, Comment, Like, Post, User):
        db.execute(delete(model))
    db.commit()

def seed(db, user_count: int = USER_COUNT, posts_per_user: int = POSTS_PER_USER, rng=None) -> dict:
    """Fill an empty database with verified users, posts, likes, comments and one private chat."""
    rng = rng or random.Random(42)
    now = utcnow()

    users = []
    for i in range(1, user_count + 1):
        gender = GENDER_FEMALE if i % 2 == 0 else GENDER_MALE
        phone = make_phone(i)
        user = User(
            open_id=f"phone:{phone}",
            phone=phone,
            nickname=fake.name_female() if gender == GENDER_FEMALE else fake.name_male(),
            bio=fake.sentence(nb_words=8),
            login_method="phone",
            role="user",
            is_verified=True,
            gender=gender,
            verified_at=now,
        )
        db.add(user)
        users.append(user)
    db.flush()

    posts = []
    for user in users:
        for _ in range(posts_per_user):
            post = Post(
                user_id=user.id,
                content=rng.choice(POST_TEMPLATES).format(city=fake.city_name()),
                images=[],
                like_count=0,
                comment_count=0,
                created_at=now - timedelta(minutes=rng.randint(1, 60 * 24 * 7)),
            )
            db.add(post)
            posts.append(post)
    db.flush()

    like_total = 0
    comment_total = 0
    for post in posts:
        for liker in rng.sample(users, k=rng.randint(0, min(5, len(users)))):
            db.add(Like(user_id=liker.id, post_id=post.id))
            post.like_count += 1
            like_total += 1
        for commenter in rng.sample(users, k=rng.randint(0, min(3, len(users)))):
            db.add(Comment(post_id=post.id, user_id=commenter.id, content=fake.sentence(nb_words=6)))
            post.comment_count += 1
            comment_total += 1

    conversation_count = 0
    if len(users) >= 2:
        first, second = users[0], users[1]
        conversation = Conversation(type=ConversationType.PRIVATE, owner_id=first.id)
        db.add(conversation)
        db.flush()
        db.add(ConversationMember(conversation_id=conversation.id, user_id=first.id))
        db.add(ConversationMember(conversation_id=conversation.id, user_id=second.id))
        db.add(Message(conversation_id=conversation.id, sender_id=first.id,
                       content="你好，很高兴认识你", message_type=MessageType.TEXT))
        db.add(Message(conversation_id=conversation.id, sender_id=second.id,
                       content="你好！", message_type=MessageType.TEXT))
        conversation_count = 1

    db.commit()
    return {
        "users": len(users),
        "posts": len(posts),
        "likes": like_total,
        "comments": comment_total,
        "conversations": conversation_count,
    }

if __name__ == "__main__":
    import models.sms_code
    import models.attempt_tracker
    import models.identity_verification

    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()
    try:
        print("Clearing existing dummy data...")
        clear(db)
        print("Cleared.")
        counts = seed(db)
        print(f"Seeded: {counts}")
    except Exception as e:
        db.rollback()
        print(f"\nERROR: {e}")
        raise
    finally:
        db.close()
