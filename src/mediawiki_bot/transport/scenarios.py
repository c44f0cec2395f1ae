"""In-memory demo wiki for mock transport runs."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..constants import NS_CATEGORY, HttpMethod


@dataclass
class DemoRevision:
    revid: int
    user: str
    timestamp: str
    comment: str
    content: str


@dataclass
class DemoWiki:
    """
    A tiny wiki that answers the subset of ``api.php`` the client uses.

    History and category listings are paginated ``page_size`` items at a
    time so that continuation is exercised.
    """

    page_size: int = 2
    username: str = "DemoBot"
    password: str = "secret"
    pages: dict[str, list[DemoRevision]] = field(default_factory=dict)
    categories: dict[str, list[tuple[str, int]]] = field(default_factory=dict)
    logged_in: Optional[str] = None
    _next_revid: int = 1000

    @classmethod
    def default(cls) -> "DemoWiki":
        """A wiki seeded with a few pages and one category."""
        wiki = cls()
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(5):
            wiki.save("Earth", f"Earth, revision {i + 1}.", f"Edit {i + 1}",
                      user=f"Editor{i % 2}", when=start + timedelta(days=i))
        wiki.save("Mars", "Mars is red.", "Create", user="Editor0", when=start)
        wiki.categories["Category:Planets"] = [
            ("Earth", 0),
            ("Mars", 0),
            ("Category:Dwarf planets", NS_CATEGORY),
            ("Venus", 0),
        ]
        return wiki

    def save(
        self,
        title: str,
        content: str,
        comment: str,
        user: Optional[str] = None,
        when: Optional[datetime] = None,
    ) -> DemoRevision:
        """Append a revision to a page, creating the page if needed."""
        self._next_revid += 1
        when = when or datetime.now(timezone.utc)
        revision = DemoRevision(
            revid=self._next_revid,
            user=user or self.logged_in or "127.0.0.1",
            timestamp=when.strftime("%Y-%m-%dT%H:%M:%SZ"),
            comment=comment,
            content=content,
        )
        self.pages.setdefault(title, []).append(revision)
        return revision

    def __call__(self, method: HttpMethod, params: dict[str, str]) -> dict[str, Any]:
        action = params.get("action")
        if action == "login":
            return self._login(params)
        if action == "logout":
            self.logged_in = None
            return {}
        if action == "edit":
            return self._edit(params)
        if action == "query":
            return self._query(params)
        return {"error": {"code": "badvalue", "info": f"Unrecognized action: {action}"}}

    def _login(self, params: dict[str, str]) -> dict[str, Any]:
        if "lgtoken" not in params:
            return {"login": {"result": "NeedToken", "token": "demo-login-token"}}
        if params.get("lgname") != self.username or params.get("lgpassword") != self.password:
            return {"login": {"result": "WrongPass"}}
        self.logged_in = self.username
        return {"login": {"result": "Success", "lgusername": self.username, "lguserid": 1}}

    def _edit(self, params: dict[str, str]) -> dict[str, Any]:
        if params.get("token") != "demo-csrf-token+\\":
            return {"error": {"code": "badtoken", "info": "Invalid CSRF token."}}
        title = params["title"]
        text = params.get("text", "")
        if params.get("section") == "new" and title in self.pages:
            previous = self.pages[title][-1].content
            text = f"{previous}\n\n== {params.get('sectiontitle', '')} ==\n{text}"
        revision = self.save(title, text, params.get("summary", ""))
        return {
            "edit": {
                "result": "Success",
                "title": title,
                "newrevid": revision.revid,
                "newtimestamp": revision.timestamp,
            }
        }

    def _query(self, params: dict[str, str]) -> dict[str, Any]:
        if params.get("list") == "categorymembers":
            return self._category_members(params)

        data: dict[str, Any] = {"query": {}}
        meta = params.get("meta", "")
        if "userinfo" in meta:
            if self.logged_in:
                data["query"]["userinfo"] = {"id": 1, "name": self.logged_in}
            else:
                data["query"]["userinfo"] = {"id": 0, "name": "127.0.0.1", "anon": ""}
        if "tokens" in meta:
            data["query"]["tokens"] = {"csrftoken": "demo-csrf-token+\\"}
        if "curtimestamp" in params:
            data["curtimestamp"] = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        if "revisions" in params.get("prop", ""):
            self._revisions(params, data)
        return data

    def _revisions(self, params: dict[str, str], data: dict[str, Any]) -> dict[str, Any]:
        if "revids" in params:
            revid = int(params["revids"])
            for title, revisions in self.pages.items():
                for revision in revisions:
                    if revision.revid == revid:
                        data["query"]["pages"] = {"1": self._page(title, [revision], params)}
                        return data
            data["query"]["badrevids"] = {str(revid): {"revid": revid, "missing": ""}}
            return data

        title = params.get("titles", "")
        if title not in self.pages:
            data["query"]["pages"] = {"-1": {"ns": 0, "title": title, "missing": ""}}
            return data

        newest_first = list(reversed(self.pages[title]))
        if "rvlimit" not in params:
            data["query"]["pages"] = {"1": self._page(title, newest_first[:1], params)}
            return data

        limit = min(int(params["rvlimit"]), self.page_size)
        offset = int(params.get("rvcontinue") or 0)
        chunk = newest_first[offset:offset + limit]
        data["query"]["pages"] = {"1": self._page(title, chunk, params)}
        if offset + limit < len(newest_first):
            data["continue"] = {"continue": "||", "rvcontinue": str(offset + limit)}
        return data

    def _page(self, title: str, revisions: list[DemoRevision], params: dict[str, str]) -> dict[str, Any]:
        fields = params.get("rvprop", "").split("|")
        rendered = []
        for revision in revisions:
            item: dict[str, Any] = {"revid": revision.revid, "timestamp": revision.timestamp}
            if "user" in fields:
                item["user"] = revision.user
            if "comment" in fields:
                item["comment"] = revision.comment
            if "size" in fields:
                item["size"] = len(revision.content)
            if "content" in fields:
                item["*"] = revision.content
            rendered.append(item)
        page: dict[str, Any] = {"pageid": 1, "ns": 0, "title": title, "revisions": rendered}
        return page

    def _category_members(self, params: dict[str, str]) -> dict[str, Any]:
        members = self.categories.get(params.get("cmtitle", ""), [])
        offset = int(params.get("cmcontinue") or 0)
        chunk = members[offset:offset + self.page_size]
        data: dict[str, Any] = {
            "query": {"categorymembers": [{"title": t, "ns": ns} for t, ns in chunk]}
        }
        if offset + self.page_size < len(members):
            data["continue"] = {"continue": "-||", "cmcontinue": str(offset + self.page_size)}
        return data
