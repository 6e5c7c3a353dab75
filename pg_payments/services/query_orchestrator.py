"""
Query orchestrator - cursor-paginated payment history with a summary.
"""
from datetime import datetime
from typing import Optional

import structlog

from pg_payments.domain.cursor import Cursor, decode_cursor, encode_cursor, from_epoch_millis
from pg_payments.domain.errors import ErrorCode, PaymentError
from pg_payments.domain.models import PaymentStatus, QueryFilter, QueryResult
from pg_payments.monitoring.metrics import payment_queries_total
from pg_payments.ports import PaymentQuery, PaymentStore, SummaryFilter

logger = structlog.get_logger(__name__)


class QueryOrchestrator:
    """
    Read-only history query.

    The page is ordered by (created_at desc, id desc). The summary covers the
    whole filtered set regardless of the page window. An unreadable cursor
    restarts from the first page instead of failing the request.
    """

    def __init__(self, payment_store: PaymentStore, default_limit: int = 20, max_limit: int = 100):
        self.payment_store = payment_store
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def query(self, query_filter: QueryFilter) -> QueryResult:
        """
        Fetch one page of payments and the summary of the filtered set.

        Args:
            query_filter: Partner/status/time-range filter, cursor and page size

        Returns:
            QueryResult: Page items, summary, outbound cursor and has_next

        Raises:
            PaymentError: INVALID_QUERY for an unknown status name
        """
        status = self._parse_status(query_filter.status)
        position = self._resolve_cursor(query_filter.cursor)
        limit = self._resolve_limit(query_filter.limit)

        payment_queries_total.labels(has_cursor=str(position is not None).lower()).inc()

        page = await self.payment_store.find_page(
            PaymentQuery(
                limit=limit,
                partner_id=query_filter.partner_id,
                status=status,
                created_from=query_filter.created_from,
                created_to=query_filter.created_to,
                cursor_created_at=position[0] if position else None,
                cursor_id=position[1] if position else None,
            )
        )
        summary = await self.payment_store.summary(
            SummaryFilter(
                partner_id=query_filter.partner_id,
                status=status,
                created_from=query_filter.created_from,
                created_to=query_filter.created_to,
            )
        )

        next_cursor = None
        if page.has_next:
            next_cursor = encode_cursor(page.next_cursor_created_at, page.next_cursor_id)

        logger.debug(
            "payment_query_completed",
            partner_id=query_filter.partner_id,
            status=status.value if status else None,
            limit=limit,
            returned=len(page.items),
            total=summary.count,
            has_next=page.has_next,
        )

        return QueryResult(
            items=page.items,
            summary=summary,
            next_cursor=next_cursor,
            has_next=page.has_next,
        )

    def _parse_status(self, status: Optional[str]) -> Optional[PaymentStatus]:
        if status is None:
            return None
        try:
            return PaymentStatus(status)
        except ValueError:
            raise PaymentError(
                ErrorCode.INVALID_QUERY,
                f"Unknown payment status: {status}",
                context={"status": status},
            ) from None

    def _resolve_cursor(self, token: Optional[str]) -> Optional[tuple[datetime, int]]:
        cursor: Optional[Cursor] = decode_cursor(token)
        if cursor is None:
            if token and token.strip():
                logger.info("payment_query_cursor_ignored", reason="undecodable")
            return None

        try:
            created_at = from_epoch_millis(cursor.epoch_millis)
        except OverflowError:
            # Decodable but outside the datetime range; same as no cursor
            logger.info("payment_query_cursor_ignored", reason="out_of_range")
            return None

        return created_at, cursor.id

    def _resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.default_limit
        return max(1, min(limit, self.max_limit))
