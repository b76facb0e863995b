"""Populate the news database with demo users, authors, categories, news and comments."""
import asyncio
import argparse
import random
import time
from datetime import timedelta

from app.database import engine, async_session, Base
from app.models import Author, Category, Comment, News, User, utcnow

CATEGORIES = {
    "Politics": "Elections, parliament and policy",
    "Business": "Markets, companies and the economy",
    "Technology": "Software, hardware and the internet",
    "Science": "Research and discoveries",
    "Sports": "Results, transfers and interviews",
    "Culture": "Film, music, books and art",
}

SPECIALIZATIONS = ["Politics", "Economy", "Technology", "Science", "Sports", "Culture", "Investigations"]

HEADLINES = [
    "What the latest {topic} figures really mean",
    "Five questions about {topic} nobody is asking",
    "Inside the {topic} debate",
    "{topic}: a week in review",
    "Why {topic} matters more than ever",
]


async def seed(small: bool = False):
    num_users = 20 if small else 200
    num_authors = 5 if small else 40
    num_news = 100 if small else 5000
    max_comments_per_news = 3 if small else 8

    print(f"Seeding: {num_users} users, {num_authors} authors, {num_news} news")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        categories = [Category(name=name, description=desc) for name, desc in CATEGORIES.items()]
        session.add_all(categories)

        authors = [
            Author(
                name=f"Reporter {i}",
                email=f"reporter_{i:03d}@newsagency.example",
                specialization=random.choice(SPECIALIZATIONS),
                bio=f"Staff reporter number {i}.",
            )
            for i in range(num_authors)
        ]
        session.add_all(authors)

        users = [
            User(
                username=f"reader_{i:04d}",
                email=f"reader_{i:04d}@example.com",
                first_name=f"Reader{i}",
                last_name=random.choice(["Smith", "Garcia", "Chen", "Okafor", "Novak"]),
            )
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()
        print(f"  Created {len(categories)} categories, {len(authors)} authors, {len(users)} users")

        batch_size = 500
        total_comments = 0
        for batch_start in range(0, num_news, batch_size):
            batch_end = min(batch_start + batch_size, num_news)
            batch = []
            for i in range(batch_start, batch_end):
                category = random.choice(categories)
                created = utcnow() - timedelta(days=random.randint(0, 365))
                published = random.random() > 0.1  # 90% published
                batch.append(News(
                    title=random.choice(HEADLINES).format(topic=category.name.lower()) + f" (#{i})",
                    content=f"Full story {i} about {category.name.lower()}. " * 20,
                    summary=f"A short take on {category.name.lower()}.",
                    view_count=random.randint(0, 10000),
                    published=published,
                    published_at=created if published else None,
                    created_at=created,
                    author_id=random.choice(authors).id,
                    category_id=category.id,
                ))
            session.add_all(batch)
            await session.flush()

            now = utcnow()
            for news in batch:
                if not news.published:
                    continue
                for _ in range(random.randint(0, max_comments_per_news)):
                    posted = news.published_at + timedelta(minutes=random.randint(1, 60 * 24 * 7))
                    session.add(Comment(
                        content="Thanks for the coverage, very informative.",
                        user_id=random.choice(users).id,
                        news_id=news.id,
                        created_at=min(posted, now),
                    ))
                    total_comments += 1
            await session.flush()

            print(f"  Batch {batch_start}-{batch_end}: news created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  News: {num_news}")
    print(f"  Comments: {total_comments}")


def main():
    parser = argparse.ArgumentParser(description="Seed the news database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 news)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
