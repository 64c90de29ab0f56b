# src/wsg_check/core/controllers/check_controller.py
import logging
from typing import Callable, Optional, Sequence

from wsg_check.auditor.core import Rule
from wsg_check.auditor.engine import ProgressCallback, RuleEngine
from wsg_check.auditor.model import PageSnapshot, RunResult
from wsg_check.auditor.registry import RuleRegistry, select_rules
from wsg_check.auditor.scorer import score_outcomes
from wsg_check.core.errors import (
    Err,
    Ok,
    OrchestratorError,
    ParseError,
    Result,
    RetrievalError,
    RetrievalErrorKind,
    RunStage,
)
from wsg_check.core.managers.config_manager import resolve_settings
from wsg_check.core.model import CheckSettings
from wsg_check.core.services.carbon_estimator_service import CO2_MODEL, estimate_co2
from wsg_check.core.services.green_hosting_service import GreenHostingService
from wsg_check.crawler.model import FetchOutcome
from wsg_check.crawler.services.http_client_service import HttpClientService
from wsg_check.crawler.utils.run_timers import RunTimers
from wsg_check.crawler.utils.url_utils import UrlUtils
from wsg_check.parser.model import ParsedDocument
from wsg_check.parser.services.page_parse_service import parse_html
from wsg_check.parser.services.resource_analyzer_service import analyze_page_weight

logger = logging.getLogger(__name__)

HtmlParser = Callable[[str, str], ParsedDocument]


class CheckController:
    """
    Runs the full check pipeline for one URL: fetch, parse, analyze, score.

    `check()` never raises. Any failure is returned as `Err(OrchestratorError)`
    with `error.stage` set to the stage that failed. The controller keeps its
    HTTP client (and therefore its response and robots caches) between runs;
    use it as an async context manager or call `close()` when done.
    """

    def __init__(
            self,
            settings: Optional[CheckSettings] = None,
            rules: Optional[Sequence[Rule]] = None,
            http_client: Optional[HttpClientService] = None,
            parser: HtmlParser = parse_html,
            green_hosting: Optional[GreenHostingService] = None,
            progress_callback: Optional[ProgressCallback] = None,
    ):
        self.settings = settings or resolve_settings()
        self.parser = parser
        self.progress_callback = progress_callback

        if rules is None:
            rules = select_rules(
                RuleRegistry.discover(),
                categories=self.settings.categories,
                guidelines=self.settings.guidelines,
                exclude_guidelines=self.settings.exclude_guidelines,
            )
        self.rules = list(rules)

        self._owns_client = http_client is None
        self.http_client = http_client or HttpClientService(
            timeout=self.settings.timeout,
            user_agent=self.settings.user_agent,
            follow_redirects=self.settings.follow_redirects,
            max_redirects=self.settings.max_redirects,
            max_retries=self.settings.max_retries,
            retry_delay=self.settings.retry_delay,
            robots_timeout=self.settings.robots_timeout,
        )
        self.green_hosting = green_hosting

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self._owns_client:
            await self.http_client.close()

    @staticmethod
    def _fail(
            error: OrchestratorError,
            stage: RunStage,
            timer: RunTimers
    ) -> Result[RunResult, OrchestratorError]:
        error.stage = stage
        timer.stop()
        logger.error("Check failed during %s after %s: %s", stage.value, timer, error)
        return Err(error)

    async def check(self, url: str) -> Result[RunResult, OrchestratorError]:
        """
        Checks a single page. Safe to call concurrently; every call keeps its
        own timer and stage.

        Returns:
            Ok(RunResult) on success, Err(OrchestratorError) otherwise. The error
            is a RetrievalError when fetching failed and a ParseError when the
            body could not be parsed.
        """
        timer = RunTimers()
        timer.start()
        started_at = timer.started_at

        # --- Fetching ---
        stage = RunStage.FETCHING
        logger.info("Fetching %s", url)
        try:
            fetched = await self.http_client.fetch(url, ignore_robots=self.settings.ignore_robots)
        except Exception as e:
            return self._fail(RetrievalError(
                f"Unexpected error fetching {url}: {e}", url, RetrievalErrorKind.NETWORK, cause=e
            ), stage, timer)
        if not fetched.ok:
            return self._fail(fetched.error, stage, timer)
        outcome: FetchOutcome = fetched.value

        # --- Parsing ---
        stage = RunStage.PARSING
        try:
            document = self.parser(outcome.body, outcome.url)
        except ParseError as e:
            return self._fail(e, stage, timer)
        except Exception as e:
            return self._fail(ParseError(f"Failed to parse {outcome.url}: {e}", cause=e), stage, timer)

        # --- Analyzing & Scoring ---
        stage = RunStage.ANALYZING
        is_green = await self._check_green_hosting(outcome.url)
        try:
            page_weight = analyze_page_weight(outcome, document)
            snapshot = PageSnapshot(
                url=url,
                fetch_outcome=outcome,
                document=document,
                page_weight=page_weight,
                is_green_hosted=is_green,
            )
            engine = RuleEngine(
                self.rules,
                rule_timeout=self.settings.rule_timeout or None,
                progress_callback=self.progress_callback,
            )
            results = await engine.run(snapshot)

            stage = RunStage.SCORING
            summary = score_outcomes(results)
        except Exception as e:
            return self._fail(OrchestratorError(f"Analysis of {url} failed: {e}", cause=e), stage, timer)

        co2 = self._estimate_co2(page_weight.html_size, is_green)

        timer.stop()
        logger.info("Checked %s: score %d in %s", url, summary.overall_score, timer)

        return Ok(RunResult(
            url=url,
            timestamp=started_at,
            duration_ms=timer.duration_ms,
            overall_score=summary.overall_score,
            category_scores=summary.category_scores,
            results=tuple(results),
            co2_per_page_view=co2,
            co2_model=CO2_MODEL,
            is_green_hosted=is_green,
        ))

    async def _check_green_hosting(self, final_url: str) -> bool:
        domain = UrlUtils.get_hostname(final_url)
        service = self.green_hosting or GreenHostingService(
            session=getattr(self.http_client, "session", None),
            timeout=self.settings.green_hosting_timeout,
        )
        try:
            return await service.is_green(domain)
        except Exception as e:
            logger.warning("Green hosting check failed for %s: %s", domain, e)
            return False

    @staticmethod
    def _estimate_co2(num_bytes: int, is_green: bool) -> float:
        try:
            return estimate_co2(num_bytes, is_green)
        except Exception as e:
            logger.warning("CO2 estimate failed: %s", e)
            return 0.0
