"""Static lookup tables used by the normalizer, catalog loader and suggestion engine."""

# canonical name -> alternate spellings and abbreviations
LOCATION_ALIASES = {
	'kathmandu': {'ktm', 'katmandu'},
	'pokhara': {'pokhra'},
	'bhaktapur': {'bhadgaun', 'bhaktpur'},
	'lalitpur': {'patan'},
	'chitwan': {'chitawan'},
	'janakpur': {'janakpurdham'},
	'biratnagar': {'birat', 'biratngar'},
	'nepalgunj': {'nepalganj'},
	'dhangadhi': {'dhangadi'},
	'butwal': {'butwaal'},
	'itahari': {'ithari'},
	'bharatpur': {'bharatpoor'},
	'birgunj': {'birganj'},
	'tulsipur': {'tulsipoor'},
}

# logical sub-region id -> physical shard file name (without extension)
SHARD_FILENAME_ALIASES = {
	'western rukum': 'western-rukum',
	'eastern rukum': 'eastern-rukum',
	'ilam': 'illam',
	'terhathum': 'tehrathum',
	'tanahun': 'tanahu',
}

# word -> display form, applied by format_location_name
DISPLAY_NAME_OVERRIDES = {
	'metropolitian': 'Metropolitan',
	'pradesh-1': 'Koshi',
}

POPULAR_LOCATIONS = [
	'kathmandu', 'pokhara', 'chitwan', 'lalitpur', 'bhaktapur',
	'biratnagar', 'janakpur', 'nepalgunj', 'dharan', 'butwal',
]

AUTOCOMPLETE_SUFFIXES = ['pur', 'nagar', 'ganj', 'kot', 'tol']

# Query engine scores
EXACT_SCORE         = 100
PREFIX_SCORE        = 85
CONTAINS_SCORE      = 70
PHONETIC_SCORE      = 50
FUZZY_SCORE_FACTOR  = 45
KEYWORD_SCORE       = 35
LENGTH_PENALTY      = 2

# Suggestion engine scores
CONTEXTUAL_SCORE    = 80
POPULAR_SCORE       = 60
AUTOCOMPLETE_SCORE  = 40

FUZZY_THRESHOLD         = 0.6
FUZZY_MIN_QUERY_LENGTH  = 2
FUZZY_MAX_QUERY_LENGTH  = 6
FUZZY_MAX_PRIOR_RESULTS = 5
FUZZY_LENGTH_TOLERANCE  = 2

MIN_QUERY_LENGTH        = 1
MIN_SUGGESTION_LENGTH   = 2
MIN_TERM_LENGTH         = 3

MAX_SEARCH_RESULTS      = 12
MAX_SUGGESTIONS         = 10
