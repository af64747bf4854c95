"""Database seeder: users, follows, tagged articles and favorites."""
import asyncio
import argparse
import random
import time
from conduit.database import engine, async_session, Base
from conduit.schemas import ArticlePosted, UserCreate
from conduit.services import user_service
from conduit.services.article_service import ArticleService
from conduit.storage import SqlArticleStorage, SqlUserStorage

TAGS = ["python", "fastapi", "postgresql", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance",
        "security", "microservices", "graphql", "rest-api", "dragons"]

async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_articles = 100 if small else 5000
    follows_per_user = 3 if small else 10
    favorites_per_user = 5 if small else 40

    print(f"Seeding: {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        users = SqlUserStorage(session)
        service = ArticleService(SqlArticleStorage(session), users)

        user_ids = []
        usernames = []
        for i in range(num_users):
            user = await user_service.create_user(users, UserCreate(
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@example.com",
                password="password123",
                bio=f"I am test user number {i}. I write about technology.",
            ))
            user_ids.append(user.id)
            usernames.append(user.username)
        print(f"  Created {len(user_ids)} users")

        for user_id in user_ids:
            for username in random.sample(usernames, k=follows_per_user):
                await user_service.follow(users, user_id, username)
        print("  Created follows")

        slugs = []
        for i in range(num_articles):
            created = await service.create_article(
                random.choice(user_ids),
                ArticlePosted(
                    title=f"Article {i} How to train your {random.choice(TAGS)}",
                    description=f"A guide to {random.choice(TAGS)} in production.",
                    body=f"This is the full body of article {i}. " * 20,
                    tag_list=random.sample(TAGS, k=random.randint(1, 4)),
                ),
            )
            slugs.append(created.article.slug)
            if (i + 1) % 500 == 0:
                print(f"  {i + 1} articles created")

        for user_id in user_ids:
            for slug in random.sample(slugs, k=min(favorites_per_user, len(slugs))):
                await service.favorite_article(user_id, slug)
        print("  Created favorites")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the Conduit database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
