# Sentences shorter than this are noise (not indexed, scored or displayed)
MIN_SENTENCE_LEN: int = 4

# Phrase index: more distinct sentences than this resets the phrase score
MAX_PHRASE_SENTENCES: int = 40

# Ranking passes: per-phrase contribution clamp for the first and second pass
FIRST_PASS_MAX_OCCUR: int = 5
SECOND_PASS_MAX_OCCUR: int = 6
SCORE_OFFSET: int = 2
MAX_WORD_SHIFT: int = 2

# /* ~~~ feedback pass only reweights phrases of the top-N slots ~~~ */
FEEDBACK_TOP_N: int = 10

# Run the full (sorted) ranking on every N-th allocated excerpt id
RERANK_EVERY: int = 5

# Fetch budgets
INITIAL_FETCH_LIMIT: int = 40     # unfaceted query / free-text refinement
FACET_FETCH_LIMIT: int = 10       # after a facet drill-down

# Facet navigation
MAX_CANDIDATES: int = 20
MAX_BREADCRUMBS: int = 6

# Snippet rendering
MIN_TERM_NUM: int = 3             # per-excerpt view hides phrases seen in fewer sentences
SUMMARY_HEADERS: int = 30
SUMMARY_SENTENCES: int = 2
SUMMARY_BOX_HEADERS: int = 50
SUMMARY_BOX_SENTENCES: int = 100

# Periodic pagination tick (seconds)
TICK_INTERVAL: float = 1.0
TICKER_JOIN_TIMEOUT: float = 2.0  # shutdown waits this long per ticker thread

# External collaborators
HTTP_TIMEOUT: int = 30
FETCH_WORKERS: int = 4
