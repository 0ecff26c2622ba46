import pytest

from valuation_formulas.assumptions import AssumptionLink
from valuation_formulas.assumptions import AssumptionStore


@pytest.fixture
def store() -> AssumptionStore:
  return AssumptionStore(
      {
          '_DISCOUNT_RATE': None,
          '_RISK_FREE_RATE': None,
          'BETA': None,
          'HISTORICAL_YEARS': 10,
      },
      links=[AssumptionLink('_DISCOUNT_RATE', ('BETA', '_RISK_FREE_RATE'))],
  )


class TestAssumptionStore:
  """Tests for AssumptionStore."""

  def test_declared_default(self, store):
    assert store.get('HISTORICAL_YEARS') == 10.0

  def test_set_then_get(self, store):
    store.set('_RISK_FREE_RATE', 0.042)

    assert store.get('_RISK_FREE_RATE') == pytest.approx(0.042)

  def test_unset_value(self, store):
    with pytest.raises(ValueError, match="'BETA' has no value"):
      store.get('BETA')

  def test_unknown_assumption(self, store):
    with pytest.raises(KeyError, match="Unknown assumption: 'GAMMA'"):
      store.get('GAMMA')
    with pytest.raises(KeyError):
      store.override('GAMMA', 1.0)

  def test_override_wins_over_later_default(self, store):
    store.override('BETA', 1.3)
    store.set('BETA', 0.9)

    assert store.get('BETA') == pytest.approx(1.3)
    assert store.is_overridden('BETA')

  def test_child_override_drops_parent_override(self, store):
    store.override('_DISCOUNT_RATE', 0.09)
    store.override('BETA', 1.2)

    assert not store.is_overridden('_DISCOUNT_RATE')

  def test_links(self, store):
    assert store.children_of('_DISCOUNT_RATE') == ['BETA', '_RISK_FREE_RATE']
    assert store.parents_of('BETA') == ['_DISCOUNT_RATE']
    assert store.parents_of('HISTORICAL_YEARS') == []

  def test_apply_overrides_and_to_dict(self, store):
    store.apply_overrides({'BETA': 1.1, 'HISTORICAL_YEARS': 5})

    values = store.to_dict()
    assert values['BETA'] == pytest.approx(1.1)
    assert values['HISTORICAL_YEARS'] == 5.0
    assert values['_DISCOUNT_RATE'] is None

  def test_describe(self, store):
    store.set('_RISK_FREE_RATE', 0.0425)

    assert store.describe('_RISK_FREE_RATE') == '_RISK_FREE_RATE: 4.25%'
    assert store.describe('HISTORICAL_YEARS') == 'HISTORICAL_YEARS: 10'
    assert store.describe('BETA') == 'BETA: unset'
