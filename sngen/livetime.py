"""
Live-time normalisation of generated samples.

Converts the detector live time of each (run, subrun) into an integer
number of events to generate, given an event rate per minute.
"""

import logging

import pandas as pd

from .event_sampling import stochastic_round

LOGGER = logging.getLogger(__name__)

TIME_EVENT_COLUMNS = ['run', 'subrun', 'livetime', 'elapsed']


class RunPeriodLookup:
    """Interface of a live-time source.

    Subclasses return the (run, subrun) pairs they know and the live time
    of each in seconds.
    """

    def subruns(self):
        raise NotImplementedError

    def livetime_seconds(self, run, subrun):
        raise NotImplementedError


class TimeEventTable(RunPeriodLookup):
    """Live times read from a whitespace separated time-event file.

    Each line holds ``run subrun livetime elapsed``; only ``livetime``
    (seconds) is used.

    Parameters
    ----------
    frame : pandas.DataFrame
        Columns ``run, subrun, livetime``
    run_begin, run_end : int, optional
        Keep runs in ``[run_begin, run_end)``
    """

    def __init__(self, frame, run_begin=None, run_end=None):
        missing = {'run', 'subrun', 'livetime'} - set(frame.columns)
        if missing:
            raise ValueError(f"time-event table lacks columns {sorted(missing)}")
        keep = pd.Series(True, index=frame.index)
        if run_begin is not None:
            keep &= frame['run'] >= run_begin
        if run_end is not None:
            keep &= frame['run'] < run_end
        self.frame = frame.loc[keep, ['run', 'subrun', 'livetime']].reset_index(drop=True)
        self._livetime = {
            (int(row.run), int(row.subrun)): float(row.livetime)
            for row in self.frame.itertuples(index=False)
        }

    @classmethod
    def from_file(cls, path, run_begin=None, run_end=None):
        frame = pd.read_csv(path, sep=r'\s+', header=None, names=TIME_EVENT_COLUMNS,
                            usecols=range(len(TIME_EVENT_COLUMNS)), comment='#')
        LOGGER.info("File opened: %s (%d subruns)", path, len(frame))
        return cls(frame, run_begin, run_end)

    def subruns(self):
        return list(self._livetime)

    def livetime_seconds(self, run, subrun):
        try:
            return self._livetime[(run, subrun)]
        except KeyError:
            raise KeyError(f"no live time for run {run} subrun {subrun}") from None


def expected_events_per_subrun(lookup, events_per_minute, rng):
    """Integer number of events per subrun proportional to its live time.

    Parameters
    ----------
    lookup : RunPeriodLookup
        Live-time source
    events_per_minute : float
        Event rate
    rng : RandomSource
        Random stream, one uniform draw per subrun

    Returns
    -------
    pandas.DataFrame
        Columns ``run, subrun, livetime, expected, events``
    """
    LOGGER.info("Estimate # of events from live time (%.4g events/min)", events_per_minute)
    weight = events_per_minute / 60.0
    rows = []
    for run, subrun in lookup.subruns():
        livetime = lookup.livetime_seconds(run, subrun)
        expected = livetime * weight
        rows.append((run, subrun, livetime, expected, stochastic_round(expected, rng)))
    return pd.DataFrame(rows, columns=['run', 'subrun', 'livetime', 'expected', 'events'])


def subrun_tags(counts):
    """One (run, subrun) per event, in table order."""
    tags = []
    for row in counts.itertuples(index=False):
        tags.extend([(int(row.run), int(row.subrun))] * int(row.events))
    return tags


__all__ = [
    'RunPeriodLookup',
    'TimeEventTable',
    'expected_events_per_subrun',
    'subrun_tags',
]
