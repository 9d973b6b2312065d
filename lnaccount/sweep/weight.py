# sizes in bytes unless stated otherwise
INPUT_SIZE = 32 + 4 + 1 + 4
P2WKH_WITNESS_SIZE = 1 + 1 + 73 + 1 + 33
NESTED_P2WKH_SCRIPT_SIG_SIZE = 1 + 22
# marker and flag, in weight units
WITNESS_HEADER_SIZE = 2
WITNESS_SCALE_FACTOR = 4


def var_int_size(n: int) -> int:
    if n < 0xFD:
        return 1
    if n <= 0xFFFF:
        return 3
    if n <= 0xFFFFFFFF:
        return 5
    return 9


class TxWeightEstimator:
    """Upper bound of the weight of a transaction once all inputs are signed."""

    def __init__(self):
        self.input_count = 0
        self.output_count = 0
        self.input_size = 0
        self.output_size = 0
        self.witness_size = 0
        self.inputs_with_witness = 0

    def add_p2wkh_input(self) -> "TxWeightEstimator":
        self.input_size += INPUT_SIZE
        self.witness_size += P2WKH_WITNESS_SIZE
        self.input_count += 1
        self.inputs_with_witness += 1
        return self

    def add_nested_p2wkh_input(self) -> "TxWeightEstimator":
        self.input_size += INPUT_SIZE + NESTED_P2WKH_SCRIPT_SIG_SIZE
        self.witness_size += P2WKH_WITNESS_SIZE
        self.input_count += 1
        self.inputs_with_witness += 1
        return self

    def add_output(self, pk_script: bytes) -> "TxWeightEstimator":
        self.output_size += 8 + var_int_size(len(pk_script)) + len(pk_script)
        self.output_count += 1
        return self

    def weight(self) -> int:
        tx_size = (
            4
            + var_int_size(self.input_count)
            + self.input_size
            + var_int_size(self.output_count)
            + self.output_size
            + 4
        )
        weight = tx_size * WITNESS_SCALE_FACTOR
        if self.inputs_with_witness > 0:
            weight += WITNESS_HEADER_SIZE + self.witness_size
        return weight

    def vsize(self) -> int:
        return -(-self.weight() // WITNESS_SCALE_FACTOR)
