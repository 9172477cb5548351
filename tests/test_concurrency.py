"""
Concurrent shortening: the store's uniqueness constraints are the only
synchronization, so parallel callers must still converge.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor

from shortlink_app.cache.strategies import InMemoryCache


async def shorten_all(service, urls):
    return await asyncio.gather(*(service.shorten(url) for url in urls))


class TestConcurrentShorten:

    def test_same_url_converges_on_one_id(self, url_service, count_rows):
        links = asyncio.run(shorten_all(url_service, ["https://example.com/a"] * 20))

        assert len(set(links)) == 1
        assert count_rows() == 1

    def test_distinct_urls_get_distinct_ids(self, url_service, count_rows):
        urls = [f"https://example.com/{i}" for i in range(20)]

        links = asyncio.run(shorten_all(url_service, urls))

        assert len(set(links)) == 20
        assert count_rows() == 20

    def test_same_first_candidate_for_different_urls(self, make_service, scripted):
        """Both calls draw "q" first; exactly one keeps it"""
        generator = scripted(["q", "q"])
        service = make_service(id_generator=generator, cache=InMemoryCache())

        links = asyncio.run(
            shorten_all(service, ["https://example.com/b", "https://example.com/c"])
        )
        ids = [link.rsplit("/", 1)[-1] for link in links]

        assert ids.count("q") == 1
        assert ids[0] != ids[1]
        assert service.lookup(ids[0]) == "https://example.com/b"
        assert service.lookup(ids[1]) == "https://example.com/c"

    def test_mixed_workload_from_threads(self, make_service, count_rows):
        """Blocking callers on separate threads, repeats interleaved"""
        service = make_service()
        urls = [f"https://example.com/{i % 5}" for i in range(30)]

        with ThreadPoolExecutor(max_workers=10) as pool:
            ids = list(pool.map(service.allocate, urls))

        by_url = {}
        for url, short_id in zip(urls, ids):
            by_url.setdefault(url, set()).add(short_id)

        assert all(len(found) == 1 for found in by_url.values())
        assert len({found.pop() for found in by_url.values()}) == 5
        assert count_rows() == 5
