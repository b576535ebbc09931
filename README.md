# ctxmix

Building blocks for a context-mixing compressor, together with helpers
that split, reorder and sort the pages of large wiki XML dumps.

## What is inside

**Coding**

- `ctxmix.coder` – a binary arithmetic `Encoder` (`encode(bit)`, `flush()`)
  and `Decoder` (`decode()`) that work on binary streams and are driven by
  a predictor: any object with `predict()`, returning the probability of a
  one bit, and `perceive(bit)`. `discretize(p)` maps a probability onto the
  16-bit scale the coder uses.

**Contexts**

- `ctxmix.contexts` – `Context` and the contexts built on it: `BitContext`,
  `BracketContext`, `CombinedContext`, `ContextHash`, `IndirectHash`,
  `IntervalHash`, `Interval` and `Sparse`. Contexts read live values through
  zero-argument callables; each has `update()` and `is_equal(other)`, and
  exposes `context` and `size`.
- `ctxmix.context_manager` – `ContextManager`, which keeps the partial-byte
  context, a circular byte history, word hashes, recent bytes, the line
  position and the high-byte (WRT) context, and updates every registered
  context in `update_contexts(bit)`. `add_context` and `add_bit_context`
  return an already registered equal context instead of adding a duplicate.

**Mixing**

- `ctxmix.sigmoid` – `Sigmoid`, a table-driven `logit(p)` with the static
  `logistic(p)` and `fast_logistic(p)`.
- `ctxmix.mixer_input` – `MixerInput`, which clamps model predictions,
  stretches them into mixer inputs and collects extra inputs.
- `ctxmix.mixer` – `Mixer`, a gated linear mixer (`mix()`, `perceive(bit)`)
  with one `ContextData` weight set per context value, up to 10000 contexts.
- `ctxmix.sse` – `SSE`, two-stage secondary estimation that refines a
  probability (`predict(value)`, `perceive(bit)`), plus `extrap`,
  `stretch_table` and `squash_table`.
- `ctxmix.lstm_layer` – `LstmLayer` and `NeuronLayer`, a layer-normalised
  LSTM layer trained by truncated backpropagation with `adam`.
- `ctxmix.lstm` – `Lstm`, a stacked LSTM predicting a distribution over the
  next symbol (`set_input`, `perceive`, `predict`). Weights are kept as
  little-endian 32-bit floats with `save_to_disk` and `load_from_disk`. An
  optional `random.Random` makes weight initialisation reproducible.

**Wiki dump helpers**

- `ctxmix.wiki_split` – `split_for_compression(source, directory)` writes
  `.intro`, `.main` and `.coda`; `split_for_decompression(directory)` splits
  `.input_decomp` into `.main_decomp`, `.intro_decomp` and `.coda_decomp`.
  Both cut at fixed line numbers.
- `ctxmix.article_reorder` – `parse_articles` finds each page's line span
  and id; `reorder(directory, num_articles)` writes `.main_reordered` in the
  order given by `.new_article_order`, and `sort(directory)` writes
  `.main_decomp_restored_sorted` with pages sorted by id.
- `ctxmix.self_extract` – `HeaderInfo` (three little-endian 32-bit sizes,
  `pack`/`unpack`), `write_header`, `read_header`, and `selfextract_comp` /
  `selfextract_decomp`, which cut the `cmix` or `archive9` file in a
  directory into its parts using the header at its end. They then try to
  run `./cmix -d ...` or `./archive9 -d ...` in that directory to unpack the
  dictionary (and article order); a missing program is ignored.

## Example

```python
import io

from ctxmix.coder import Decoder, Encoder, discretize
from ctxmix.sigmoid import Sigmoid


class Half:
    def predict(self):
        return 0.5

    def perceive(self, bit):
        pass


bits = [1, 0, 1, 1, 0, 0, 1, 0]
stream = io.BytesIO()
encoder = Encoder(stream, Half())
for bit in bits:
    encoder.encode(bit)
encoder.flush()

stream.seek(0)
decoder = Decoder(stream, Half())
assert [decoder.decode() for _ in bits] == bits

print(discretize(0.5))                     # 32768
print(Sigmoid.logistic(Sigmoid(4096).logit(0.9)))
```

## What it does not do

There is no command-line compressor and no complete predictor: the package
supplies the coder, contexts, mixers, SSE and LSTM, but not the models that
combine them into a working compressor, so it cannot by itself compress or
decompress files. Nor does it include the stage that unescapes XML
entities and separates page metadata from text; the wiki helpers only
split, reorder, sort and unpack files.

## Tests

Install the `test` extra and run `pytest`.