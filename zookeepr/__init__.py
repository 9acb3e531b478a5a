"""Entrypoint for the Zookeepr HTTP API package.

The package exposes a FastAPI application serving the animal and
zookeeper collections under ``/api`` together with the HTML pages in
``public/``. Run it with Uvicorn:

>>> uvicorn zookeepr.main:app --reload

or through the ``zookeepr`` console script, which honours ``HOST`` and
``PORT``. Collections live in flat JSON files loaded once at startup and
rewritten on every insert.
"""

from .main import app  # noqa: F401
