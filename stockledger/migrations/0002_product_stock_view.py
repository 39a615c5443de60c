"""
Create the product_stock view.

One row per (company_id, product_id): stock = sum of signed_qty;
reserved = open reservations (released_at IS NULL) of the same company;
available = stock - reserved. Products without ledger rows are absent
from the view.
"""

from django.db import migrations

CREATE_VIEW = """
CREATE VIEW product_stock AS
SELECT
    COALESCE(m.company_id, '') || ':' || m.product_id AS id,
    m.company_id AS company_id,
    m.product_id AS product_id,
    m.stock AS stock,
    COALESCE(r.reserved, 0) AS reserved,
    m.stock - COALESCE(r.reserved, 0) AS available
FROM (
    SELECT company_id, product_id, SUM(signed_qty) AS stock
    FROM stock_movements
    GROUP BY company_id, product_id
) m
LEFT JOIN (
    SELECT company_id, product_id, SUM(quantity) AS reserved
    FROM stock_reservations
    WHERE released_at IS NULL
    GROUP BY company_id, product_id
) r ON r.product_id = m.product_id
   AND COALESCE(r.company_id, '') = COALESCE(m.company_id, '')
"""

DROP_VIEW = "DROP VIEW IF EXISTS product_stock"


class Migration(migrations.Migration):

    dependencies = [
        ('stockledger', '0001_initial'),
    ]

    operations = [
        migrations.RunSQL(CREATE_VIEW, reverse_sql=DROP_VIEW),
    ]
