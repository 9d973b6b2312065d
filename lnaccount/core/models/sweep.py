from pydantic import BaseModel


class SweepTransaction(BaseModel):
    raw_tx: bytes
    txid: str
    # satoshis
    fee: int

    @property
    def raw_tx_hex(self) -> str:
        return self.raw_tx.hex()


class SweepAllCoinsTransactions(BaseModel):
    # total value of the listed coins in satoshis
    amount: int
    # keyed by confirmation target
    transactions: dict[int, SweepTransaction] = {}
