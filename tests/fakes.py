"""
In-memory stand-in for the database port
"""

import json
import re

from lpgraph.errors import StoreExecutionError


EXTERNAL_ID = re.compile(r'jsonId: ("(?:[^"\\]|\\.)*"|-?\d+)')


class FakeDatabase:
    """
    Records every statement and imitates just enough of a store for the
    loader: CREATE (n...) assigns the next store id, the wipe clears them
    and the correlation query returns storeId/externalId rows.
    """

    def __init__(self, fail_on=None, rows=None):
        self.fail_on = fail_on
        self.rows = rows or []
        self.statements = []
        self.nodes = {}
        self.next_id = 0
        self.connected = False
        self.closed = False

    def connect(self):
        self.connected = True
        return self

    def close(self):
        self.closed = True

    def execute_read(self, query):
        self._record("read", query)
        if "AS externalId" in query:
            return [{"storeId": store_id, "externalId": ext} for store_id, ext in self.nodes.items()]
        return list(self.rows)

    def execute_write(self, query):
        self._record("write", query)
        if query == "MATCH (n) DETACH DELETE n":
            self.nodes.clear()
            return []
        if query.startswith("CREATE (n"):
            match = EXTERNAL_ID.search(query)
            self.nodes[self.next_id] = json.loads(match.group(1)) if match else None
            self.next_id += 1
        return list(self.rows)

    def writes(self):
        return [query for mode, query in self.statements if mode == "write"]

    def _record(self, mode, query):
        self.statements.append((mode, query))
        if self.fail_on and self.fail_on(query):
            raise StoreExecutionError("simulated failure", statement=query)
