import numpy as np
import pandas as pd

_RESULT_COLUMNS = ['id', 'name', 'type', 'score', 'matchType', 'fullPath', 'region', 'subRegion']
_OPTION_COLUMNS = ['id', 'displayName', 'value', 'parent']

class LocationDataConverter:
	"""
	Converts location search output to pandas DataFrames.

	Handy for inspecting rankings and catalog contents in a notebook or for
	exporting them; the service itself always returns plain objects.

	Methods:
		search_results: Converts a list of MatchResult
		options: Converts a picker listing
		locations: Converts indexed locations
		performance_stats: Converts a performance stats dict
	"""
	@staticmethod
	def search_results(results, rank_as_index=True):
		"""
		Converts search or suggestion results to a DataFrame.

		Parameters:
			results (list): MatchResult objects, in ranked order
			rank_as_index (bool): Use the 1-based rank as index

		Returns:
			pandas.DataFrame: One row per result
		"""
		if not results:
			return pd.DataFrame(columns=_RESULT_COLUMNS)

		rows = [result.to_dict() for result in results]
		df = pd.DataFrame(rows)
		df['score'] = np.round(df['score'].astype(float), 2)
		df['highlight'] = [
			result.highlight.match if result.highlight is not None else None for result in results
		]
		df = df[_RESULT_COLUMNS + ['highlight']]
		if rank_as_index:
			df.index = pd.RangeIndex(1, len(df) + 1, name='rank')
		return df

	@staticmethod
	def options(options):
		if not options:
			return pd.DataFrame(columns=_OPTION_COLUMNS)
		return pd.DataFrame([option.to_dict() for option in options], columns=_OPTION_COLUMNS)

	@staticmethod
	def locations(locations):
		"""
		Converts indexed locations, adding how many index keys each one has.
		"""
		if not locations:
			return pd.DataFrame(columns=['id', 'name', 'type', 'fullPath', 'terms', 'keywords', 'phoneticKey'])
		df = pd.DataFrame([location.to_dict() for location in locations])
		df['terms'] = np.array([len(location.search_terms) for location in locations], dtype=np.int64)
		df['keywords'] = np.array([len(location.keywords) for location in locations], dtype=np.int64)
		df['phoneticKey'] = [location.phonetic_key for location in locations]
		return df[['id', 'name', 'type', 'fullPath', 'terms', 'keywords', 'phoneticKey']]

	@staticmethod
	def performance_stats(stats):
		return pd.Series(stats, name='value').to_frame()
