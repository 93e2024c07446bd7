# finance_ledger/outputs/csv_output.py

import csv
import logging
import os

from finance_ledger.outputs.base import BaseOutput

logger = logging.getLogger(__name__)

HEADER = ['id', 'date', 'type', 'category', 'description', 'amount', 'created_at']


class CSVOutput(BaseOutput):
    """
    Writes the ledger to ``ledger.csv`` in the configured output directory,
    keeping the order it is given (newest date first when fed from the store).
    """
    def __init__(self, config):
        self.config     = config
        self.output_dir = config.get('output_dir', 'data')
        self.filename   = config.get('csv_filename', 'ledger.csv')

    def write(self, transactions):
        os.makedirs(self.output_dir, exist_ok=True)
        out_path = os.path.join(self.output_dir, self.filename)

        with open(out_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(HEADER)
            count = 0
            for tx in transactions:
                writer.writerow([
                    tx.id,
                    tx.date,
                    tx.type,
                    tx.category,
                    tx.description,
                    f"{tx.amount:.2f}",
                    tx.created_at,
                ])
                count += 1

        logger.info("Written %d transactions to %s", count, out_path)
        return out_path
