"""Lazy sections — children and views that load on first visit.

The docs section fetches its child routes the first time anything under
/docs is resolved; each page's view is loaded by a continuation-style
loader that completes from a worker thread.  ``loads`` records every
loader call so it is easy to see that each one runs once.

Run:
    cd examples/lazy_sections && PYTHONPATH=. waypoint match app /docs /docs/intro /docs/api
"""

import threading

loads: list[str] = []

PAGES = {"intro": "IntroPage", "api": "ApiPage"}


def page_view(slug: str):
    def get_component(location, done):
        loads.append(f"view:{slug}")
        threading.Thread(target=done, args=(None, PAGES[slug])).start()

    return get_component


async def get_doc_routes(location):
    loads.append("docs")
    return [{"path": slug, "name": slug, "get_component": page_view(slug)} for slug in PAGES]


async def get_doc_index(location):
    loads.append("docs-index")
    return {"name": "toc", "component": "TableOfContents"}


routes = [
    {"path": "/", "name": "home", "component": "Home"},
    {
        "path": "/docs",
        "name": "docs",
        "component": "DocsLayout",
        "get_child_routes": get_doc_routes,
        "get_index_route": get_doc_index,
    },
]
