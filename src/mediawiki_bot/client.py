"""
MediaWiki API client.

Every public method returns a :class:`~mediawiki_bot.deferred.Deferred`,
which can be awaited or given callbacks. All calls of one client go through
its own dispatch queue, so they are serialized and throttled.
"""
import asyncio
import logging
from typing import Any, Coroutine, Mapping, Optional, Union

from .config import ClientSettings
from .constants import NS_CATEGORY, HttpMethod
from .continuation import ContinuationEngine
from .decoder import raise_for_api_error
from .deferred import Deferred
from .errors import APIError, QueueClosedError
from .models import CategoryMembers, EditResult, PageContent, PageHistory, Revision, UserInfo
from .queue import DispatchQueue, QueueStats
from .transport import Transport, create_transport

logger = logging.getLogger(__name__)

HISTORY_PROPS = "timestamp|user|ids|comment|size|tags"


def _require(data: Mapping[str, Any], *path: str) -> Any:
    """Walk ``path`` into a response, raising APIError if any key is absent."""
    node: Any = data
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            raise APIError("unexpected-response", f"Response has no {'.'.join(path)}")
        node = node[key]
    return node


def _first_page(data: Mapping[str, Any]) -> dict[str, Any]:
    pages = _require(data, "query", "pages")
    if isinstance(pages, Mapping):
        pages = list(pages.values())
    if not pages:
        raise APIError("unexpected-response", "Response lists no pages")
    return pages[0]


class MediaWikiBot:
    """
    Rate-limited client for a MediaWiki ``api.php`` endpoint.

    Each instance owns an independent dispatch queue and throttle clock.
    Calls must be made from a running event loop.

    Example::

        async with MediaWikiBot(endpoint="https://test.wikipedia.org/w/api.php") as bot:
            page = await bot.page("Earth")
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        transport: Optional[Transport] = None,
        **config: Any,
    ):
        """
        Initialize the client.

        Args:
            settings: Complete settings; mutually exclusive with keyword options
            transport: Transport to use instead of the one named in settings
            **config: Options for :meth:`ClientSettings.from_mapping`
        """
        if settings is not None and config:
            raise TypeError("Pass either settings or keyword options, not both")
        self.settings = settings or ClientSettings.from_mapping(config)
        self.transport = transport or create_transport(
            self.settings.transport,
            user_agent=self.settings.user_agent,
            timeout=self.settings.timeout_seconds,
        )
        self.queue = DispatchQueue(
            transport=self.transport,
            endpoint=self.settings.endpoint,
            min_interval_seconds=self.settings.min_interval_seconds,
        )
        self._closing = False
        self._operations: set[asyncio.Future] = set()

    async def __aenter__(self) -> "MediaWikiBot":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """
        Stop accepting calls and shut down.

        Operations already started run to completion, including continuation
        rounds and follow-up calls they have yet to make. Queued calls still
        go out. The transport is closed last.
        """
        self._closing = True
        if self._operations:
            await asyncio.wait(set(self._operations))
        self.queue.close()
        await self.queue.drain()
        await self.transport.close()

    @property
    def closing(self) -> bool:
        return self._closing

    def get_stats(self) -> QueueStats:
        return self.queue.get_stats()

    def _enqueue(
        self, parameters: Mapping[str, Any], method: HttpMethod, priority: bool
    ) -> Deferred:
        if self._closing:
            raise QueueClosedError("Client is closing")
        return self.queue.enqueue(parameters, method, priority)

    def _track(self, operation: Coroutine[Any, Any, Any]) -> Deferred:
        """Run a multi-step operation so that :meth:`close` waits for it."""
        task = asyncio.ensure_future(operation)
        self._operations.add(task)
        task.add_done_callback(self._operations.discard)
        return Deferred.from_coroutine(task)

    # === Generic requests ===

    def get(self, parameters: Mapping[str, Any], priority: bool = False) -> Deferred:
        """
        Make a GET call.

        Args:
            parameters: API parameters
            priority: Put the call ahead of all normal-priority calls

        Returns:
            Deferred resolved with the decoded response
        """
        return self._enqueue(parameters, HttpMethod.GET, priority)

    def post(self, parameters: Mapping[str, Any], priority: bool = False) -> Deferred:
        """
        Make a POST call.

        Args:
            parameters: API parameters
            priority: Put the call ahead of all normal-priority calls

        Returns:
            Deferred resolved with the decoded response
        """
        return self._enqueue(parameters, HttpMethod.POST, priority)

    # === Session ===

    def login(self, username: str, password: str, priority: bool = False) -> Deferred:
        """
        Log in.

        If the wiki asks for a login token, the call is repeated once with it.

        Returns:
            Deferred resolved with the logged-in user name, or rejected with
            APIError carrying the wiki's result code (e.g. "WrongPass")
        """
        args = {"action": "login", "lgname": username, "lgpassword": password}
        first = self.post(args, priority)
        return self._track(self._login(first, args, username))

    async def _login(self, first: Deferred, args: dict[str, Any], username: str) -> str:
        data = raise_for_api_error(await first)
        result = _require(data, "login")

        if result.get("result") == "NeedToken":
            logger.debug("Login requires a token, retrying with it")
            args = {**args, "lgtoken": _require(result, "token")}
            data = raise_for_api_error(await self.queue.enqueue(args, HttpMethod.POST, True))
            result = _require(data, "login")

        if result.get("result") != "Success":
            raise APIError(str(result.get("result", "unknown")), result.get("reason"))

        logger.info(f"Logged in as {result.get('lgusername', username)}")
        return result.get("lgusername", username)

    def logout(self, priority: bool = False) -> Deferred:
        """Log out. Sent as POST so that it is never served from a cache."""
        return self.post({"action": "logout"}, priority)

    def userinfo(self, priority: bool = False) -> Deferred:
        """Deferred resolved with the current :class:`UserInfo`."""
        first = self.get({"action": "query", "meta": "userinfo"}, priority)
        return self._track(self._userinfo(first))

    async def _userinfo(self, first: Deferred) -> UserInfo:
        data = raise_for_api_error(await first)
        return UserInfo.model_validate(_require(data, "query", "userinfo"))

    def name(self, priority: bool = False) -> Deferred:
        """Deferred resolved with the current user name."""
        return self._track(self._name(self.userinfo(priority)))

    async def _name(self, info: Deferred) -> str:
        return (await info).name

    # === Pages ===

    def page(self, title: str, priority: bool = False) -> Deferred:
        """Deferred resolved with the latest :class:`PageContent` of a page."""
        return self._page({"titles": title}, priority)

    def revision(self, revid: Union[int, str], priority: bool = False) -> Deferred:
        """Deferred resolved with the :class:`PageContent` of one revision."""
        return self._page({"revids": revid}, priority)

    def _page(self, query: Mapping[str, Any], priority: bool) -> Deferred:
        params = {
            **query,
            "action": "query",
            "prop": "revisions",
            "rvprop": "timestamp|content",
        }
        return self._track(self._read_page(self.get(params, priority), query))

    async def _read_page(self, first: Deferred, query: Mapping[str, Any]) -> PageContent:
        data = raise_for_api_error(await first)
        if data.get("query", {}).get("badrevids"):
            raise APIError("nosuchrevid", f"There is no revision with ID {query.get('revids')}")

        page = _first_page(data)
        if "missing" in page or "invalid" in page:
            raise APIError("missing", f"The page {page.get('title', query)!r} does not exist")

        revision = _require(page, "revisions")[0]
        content = revision.get("*")
        if content is None:
            # Responses in the slots layout keep content under the main slot
            main = revision.get("slots", {}).get("main", {})
            content = main.get("*", main.get("content", ""))
        return PageContent(title=page["title"], content=content, timestamp=revision["timestamp"])

    def _paginate(self, **kwargs: Any) -> ContinuationEngine:
        """Build a continuation engine over this client's queue and send its first round."""
        if self._closing:
            raise QueueClosedError("Client is closing")
        return ContinuationEngine(queue=self.queue, **kwargs).start()

    def history(self, title: str, count: Union[int, str], priority: bool = False) -> Deferred:
        """
        Deferred resolved with up to ``count`` revisions of a page, newest first.

        Follows continuation until ``count`` revisions are gathered or the
        history runs out.
        """
        count = int(count)
        if count < 1:
            raise ValueError("count must be at least 1")

        def extract(data: dict[str, Any]) -> tuple[list[Any], dict[str, Any]]:
            page = _first_page(data)
            if "missing" in page or "invalid" in page:
                raise APIError("missing", f"The page {title!r} does not exist")
            return page.get("revisions", []), {"title": page.get("title", title)}

        engine = self._paginate(
            base_parameters={
                "action": "query",
                "prop": "revisions",
                "titles": title,
                "rvprop": HISTORY_PROPS,
                "rvlimit": count,
            },
            cursor_key="rvcontinue",
            extract=extract,
            target_count=count,
            priority=priority,
        )
        return self._track(self._history(engine, title))

    async def _history(self, engine: ContinuationEngine, title: str) -> PageHistory:
        result = await engine.run()
        return PageHistory(
            title=result.summary.get("title", title),
            revisions=[Revision.model_validate(item) for item in result.items],
        )

    def category(self, category: str, priority: bool = False) -> Deferred:
        """Deferred resolved with every member of a category, as :class:`CategoryMembers`."""
        members = CategoryMembers(category=category)

        def extract(data: dict[str, Any]) -> tuple[list[Any], dict[str, Any]]:
            batch = _require(data, "query", "categorymembers")
            for member in batch:
                if member.get("ns") == NS_CATEGORY:
                    members.subcategories.append(member["title"])
                else:
                    members.pages.append(member["title"])
            return batch, {}

        engine = self._paginate(
            base_parameters={
                "action": "query",
                "list": "categorymembers",
                "cmtitle": category,
                "cmlimit": "max",
                "cmsort": "sortkey",
                "cmdir": "desc",
            },
            cursor_key="cmcontinue",
            extract=extract,
            priority=priority,
        )
        return self._track(self._category(engine, members))

    async def _category(
        self, engine: ContinuationEngine, members: CategoryMembers
    ) -> CategoryMembers:
        await engine.run()
        return members

    # === Editing ===

    def _with_byeline(self, summary: str) -> str:
        return " ".join(part for part in (summary, self.settings.byeline) if part)

    def edit(self, title: str, text: str, summary: str, priority: bool = False) -> Deferred:
        """
        Replace the content of a page.

        The configured byeline is appended to the summary.

        Returns:
            Deferred resolved with an :class:`EditResult`
        """
        return self._edit(title, text, self._with_byeline(summary), priority)

    def add(self, title: str, heading: str, body: str, priority: bool = False) -> Deferred:
        """
        Append a new section to a page.

        The heading becomes the section title; the summary is the heading
        followed by the configured byeline.

        Returns:
            Deferred resolved with an :class:`EditResult`
        """
        return self._edit(
            title, body, self._with_byeline(heading), priority,
            section="new", section_title=heading,
        )

    def _edit(
        self,
        title: str,
        text: str,
        summary: str,
        priority: bool,
        section: Optional[str] = None,
        section_title: Optional[str] = None,
    ) -> Deferred:
        token_query = self.get({
            "action": "query",
            "meta": "tokens",
            "type": "csrf",
            "prop": "info|revisions",
            "rvprop": "timestamp",
            "titles": title,
            "curtimestamp": True,
        }, priority)

        args: dict[str, Any] = {
            "action": "edit",
            "bot": True,
            "title": title,
            "text": text,
            "summary": summary,
        }
        if section is not None:
            args["section"] = section
        if section_title is not None:
            args["sectiontitle"] = section_title
        return self._track(self._submit_edit(token_query, args))

    async def _submit_edit(self, token_query: Deferred, args: dict[str, Any]) -> EditResult:
        title = args["title"]
        data = raise_for_api_error(await token_query)
        args["token"] = _require(data, "query", "tokens", "csrftoken")
        args["starttimestamp"] = data.get("curtimestamp")
        revisions = _first_page(data).get("revisions")
        if revisions:
            # Lets the wiki detect an edit conflict with a newer revision
            args["basetimestamp"] = revisions[0]["timestamp"]

        response = await self.queue.enqueue(args, HttpMethod.POST, True)
        result = _require(raise_for_api_error(response), "edit")
        if result.get("result") != "Success":
            raise APIError(str(result.get("result", "unknown")), result.get("info"))

        logger.info(f"Edited {result.get('title', title)} (revision {result.get('newrevid')})")
        return EditResult(
            title=result.get("title", title),
            newrevid=result.get("newrevid"),
            newtimestamp=result.get("newtimestamp"),
            nochange="nochange" in result,
        )
