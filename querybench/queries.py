"""
Built-in query variants.

All three answer the same question over the sales dataset: for every
salesperson, the largest sale amount and the customer it was made to.

- lateral: LATERAL derived table, one ordered index probe per salesperson.
- row_number: ROW_NUMBER() window over all sales, then keep rank 1.
- correlated_subquery: two correlated subqueries computing MAX(amount) twice;
  the known slow formulation, kept as the baseline to beat.
"""

from __future__ import annotations

from querybench.domain.models import QueryVariant
from querybench.registry import QueryRegistry

LATERAL_SQL = """
SELECT
  salesperson.name,
  max_sale.amount,
  max_sale.customer_name
FROM
  salesperson,
  LATERAL
  (SELECT amount, customer_name
    FROM all_sales
    WHERE all_sales.salesperson_id = salesperson.id
    ORDER BY amount DESC LIMIT 1)
  AS max_sale
"""

ROW_NUMBER_SQL = """
SELECT
    s.name,
    ranked.amount,
    ranked.customer_name
FROM salesperson s
JOIN (
    SELECT
        salesperson_id,
        amount,
        customer_name,
        ROW_NUMBER() OVER (PARTITION BY salesperson_id ORDER BY amount DESC) AS rn
    FROM all_sales
) ranked ON s.id = ranked.salesperson_id AND ranked.rn = 1
"""

CORRELATED_SUBQUERY_SQL = """
SELECT
  salesperson.name,
  (SELECT MAX(amount) AS amount
    FROM all_sales
    WHERE all_sales.salesperson_id = salesperson.id)
  AS amount,
  (SELECT customer_name
    FROM all_sales
    WHERE all_sales.salesperson_id = salesperson.id
    AND all_sales.amount =
         (SELECT MAX(amount) AS amount
           FROM all_sales
           WHERE all_sales.salesperson_id = salesperson.id)
    LIMIT 1)
  AS customer_name
FROM salesperson
"""

LATERAL = QueryVariant(
    id="lateral",
    display_name="LATERAL derived table",
    statement=LATERAL_SQL,
    description="Per-salesperson LATERAL subquery ordered by amount with LIMIT 1.",
)

ROW_NUMBER = QueryVariant(
    id="row_number",
    display_name="ROW_NUMBER() window",
    statement=ROW_NUMBER_SQL,
    description="Rank all sales per salesperson with a window function and keep rank 1.",
)

CORRELATED_SUBQUERY = QueryVariant(
    id="correlated_subquery",
    display_name="Correlated subqueries",
    statement=CORRELATED_SUBQUERY_SQL,
    description="Scalar subqueries computing MAX(amount) twice per salesperson.",
)

BUILTIN_VARIANTS = (LATERAL, ROW_NUMBER, CORRELATED_SUBQUERY)


def default_registry() -> QueryRegistry:
    """A fresh registry holding the built-in variants in their canonical order."""
    return QueryRegistry(BUILTIN_VARIANTS)


__all__ = [
    "BUILTIN_VARIANTS",
    "CORRELATED_SUBQUERY",
    "LATERAL",
    "ROW_NUMBER",
    "default_registry",
]
