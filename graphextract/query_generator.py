"""GraphQL query templates per query type and endpoint, with pagination support."""

from __future__ import annotations

import logging
import re
import threading
from typing import Mapping

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
_FIRST_PATTERN = re.compile(r"first: \d+")
_META_FIELD = "\n  _meta {\n    deployment\n  }\n"


def _lookup(templates: Mapping[str, str] | None, endpoint: str) -> str:
    """Find a template: exact endpoint, then partial match, then the default."""
    if not templates:
        return ""
    if endpoint in templates:
        return templates[endpoint]
    for template_endpoint, template in templates.items():
        if template_endpoint in endpoint or endpoint in template_endpoint:
            return template
    return templates.get("default", "")


class QueryGenerator:
    """Holds query templates and derives cursor-paginated versions of them."""

    def __init__(self, default_page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.default_page_size = (
            default_page_size if default_page_size > 0 else DEFAULT_PAGE_SIZE
        )
        self._templates: dict[str, dict[str, str]] = {}
        self._paginated: dict[str, dict[str, str]] = {}
        self._lock = threading.RLock()

    def register_query_template(self, query_type: str, endpoint: str, template: str) -> None:
        """Register a template for a query type and endpoint, and its paginated form."""
        with self._lock:
            self._templates.setdefault(query_type, {})[endpoint] = template
            self._paginated.setdefault(query_type, {})[endpoint] = (
                self._paginated_template(template, query_type)
            )
        log.debug("registered query template type=%s endpoint=%s", query_type, endpoint)

    def register_default_query_template(self, query_type: str, template: str) -> None:
        """Register the fallback template for a query type."""
        self.register_query_template(query_type, "default", template)

    def generate_query(self, endpoint: str, query_type: str) -> str:
        """Return the query for an endpoint and type, or an empty string."""
        with self._lock:
            return _lookup(self._templates.get(query_type), endpoint)

    def generate_paginated_query(
        self, endpoint: str, query_type: str, cursor: str = "", first: int = 0
    ) -> str:
        """Return the paginated query with page size and cursor filled in.

        A non-positive ``first`` uses the default page size. Returns an empty
        string when no template applies.
        """
        with self._lock:
            if first <= 0:
                first = self.default_page_size
            template = _lookup(self._paginated.get(query_type), endpoint)
        if not template:
            return ""
        query = template.replace("{FIRST}", str(first))
        cursor_arg = f', where: {{id_gt: "{cursor}"}}' if cursor else ""
        return query.replace("{CURSOR}", cursor_arg)

    def load_query_variants(self, query_variants: Mapping[str, Mapping[str, str]]) -> None:
        """Register every template of a query-type -> endpoint -> query mapping."""
        for query_type, variants in query_variants.items():
            for endpoint, query in variants.items():
                self.register_query_template(query_type, endpoint, query)

    def add_meta_deployment_to_queries(self) -> None:
        """Add a ``_meta { deployment }`` selection to every query lacking ``_meta``."""
        with self._lock:
            for query_type, templates in self._templates.items():
                for endpoint, query in list(templates.items()):
                    if "_meta" in query:
                        continue
                    last_brace = query.rfind("}")
                    if last_brace < 0:
                        continue
                    modified = query[:last_brace] + _META_FIELD + query[last_brace:]
                    templates[endpoint] = modified
                    paginated = self._paginated.get(query_type)
                    if paginated is not None:
                        paginated[endpoint] = self._paginated_template(modified, query_type)
                    log.debug(
                        "added _meta.deployment to query type=%s endpoint=%s",
                        query_type,
                        endpoint,
                    )

    @staticmethod
    def _paginated_template(template: str, query_type: str) -> str:
        """Turn a template into one carrying {FIRST} and {CURSOR} placeholders."""
        if _FIRST_PATTERN.search(template):
            return template.replace("first: 1000", "first: {FIRST}{CURSOR}", 1)
        entity_call = f"{query_type}("
        if entity_call in template:
            return template.replace(entity_call, f"{query_type}(first: {{FIRST}}{{CURSOR}}", 1)
        log.warning("could not generate paginated template for query type %s", query_type)
        return template