"""Cellar additions calculators.

Every calculator takes a mapping of request data and returns a dict of
rounded results. Volumes are in liters unless a unit field says otherwise.
"""

import logging
from collections.abc import Mapping

from .errors import ValidationError
from .models import parse_number

logger = logging.getLogger(__name__)

VOLUME_REQUIRED = 'Volume is required.'
POSITIVE_VALUE = 'Value must be positive.'
INVALID_INPUT = 'Please enter at least one valid value.'
TARGET_ABOVE_CURRENT = 'Target must be greater than current value.'

# PMS liberates 57% of its weight as SO2: 1000 / 0.57.
PMS_DIVISOR = 570.0
SULFITE_FACTORS = {
    'potassium_metabisulfite': 0.57,
    'sodium_metabisulfite': 0.67,
    'sulfur_dioxide_gas': 1.0,
}
SO2_PKA = 1.81
CU_FRACTION = 0.2545  # Cu share of CuSO4.5H2O
YAN_TO_DAP = 4.7
MAX_RECOMMENDED_DILUTION = 20.0

RECOMMENDED_SO2 = {
    'red': {
        'low': {'total': 30, 'free': 20, 'molecular': 0.5},
        'medium': {'total': 50, 'free': 30, 'molecular': 0.8},
        'high': {'total': 80, 'free': 40, 'molecular': 0.8},
    },
    'white': {
        'low': {'total': 50, 'free': 30, 'molecular': 0.8},
        'medium': {'total': 80, 'free': 40, 'molecular': 0.8},
        'high': {'total': 120, 'free': 50, 'molecular': 0.8},
    },
    'sweet': {
        'low': {'total': 100, 'free': 40, 'molecular': 0.8},
        'medium': {'total': 150, 'free': 60, 'molecular': 0.8},
        'high': {'total': 200, 'free': 80, 'molecular': 0.8},
    },
}


def _number(data, key, message=INVALID_INPUT):
    try:
        value = parse_number(data.get(key), key, required=True)
    except ValidationError:
        raise ValidationError(message, field=key)
    return value


def _positive(data, key, message=POSITIVE_VALUE):
    value = _number(data, key, message)
    if value <= 0:
        raise ValidationError(message, field=key)
    return value


def _volume(data, key='volume'):
    return _positive(data, key, VOLUME_REQUIRED)


def calculate_pms(data):
    """Potassium metabisulphite needed for an SO2 addition rate."""
    volume = _volume(data)
    so2_rate = _positive(data, 'so2_rate')
    return {
        'pms_grams': round(so2_rate * volume / PMS_DIVISOR, 2),
        'so2_rate': so2_rate,
        'volume': volume,
    }


def calculate_so2(data):
    volume = _volume(data)
    current = _number(data, 'current_so2')
    target = _number(data, 'target_so2')
    if target <= current:
        raise ValidationError(TARGET_ABOVE_CURRENT, field='target_so2')

    sulfite_type = data.get('sulfite_type') or 'potassium_metabisulfite'
    factor = SULFITE_FACTORS.get(sulfite_type, SULFITE_FACTORS['potassium_metabisulfite'])
    difference = target - current
    return {
        'amount': round(volume * difference / (factor * 1000), 2),
        'concentration': round(target, 1),
        'total_so2': round(difference * volume / 1000, 2),
        'sulfite_type': sulfite_type,
        'factor': round(factor * 100),
    }


def molecular_so2(free_so2, ph):
    """Molecular SO2 (mg/L) from free SO2 and pH (Henderson-Hasselbalch)."""
    return free_so2 / (1 + 10 ** (ph - SO2_PKA))


def recommended_so2(wine_type, ph):
    if ph < 3.2:
        risk = 'low'
    elif ph > 3.6:
        risk = 'high'
    else:
        risk = 'medium'
    levels = RECOMMENDED_SO2.get(wine_type)
    if levels is None:
        return dict(RECOMMENDED_SO2['white']['medium'])
    return dict(levels[risk])


def calculate_molecular_so2(data):
    free_so2 = _number(data, 'free_so2')
    if free_so2 < 0:
        raise ValidationError(POSITIVE_VALUE, field='free_so2')
    ph = _positive(data, 'ph')
    return {
        'molecular_so2': round(molecular_so2(free_so2, ph), 3),
        'recommended': recommended_so2(data.get('wine_type') or 'white', ph),
    }


def calculate_acid(data):
    volume = _volume(data)
    rate = _positive(data, 'addition_rate')
    return {
        'amount_kg': round(rate * volume / 1000, 3),
        'amount_g': round(rate * volume, 1),
        'addition_rate': rate,
        'volume': volume,
    }


def calculate_ascorbic_acid(data):
    rate = _positive(data, 'addition_rate')
    volume = _volume(data)
    if rate < 20 or rate > 200:
        logger.warning('Ascorbic acid rate %s mg/L outside typical range (50-100 mg/L)', rate)
    amount_g = volume * rate / 1000
    return {
        'amount_g': round(amount_g, 2),
        'amount_kg': round(amount_g / 1000, 3),
        'amount_mg': round(volume * rate),
        'addition_rate': rate,
        'volume': volume,
    }


def calculate_fortification(data):
    """Spirit needed to raise a wine to a target alcohol (Pearson square)."""
    volume = _volume(data)
    current = _number(data, 'current_alcohol')
    target = _number(data, 'target_alcohol')
    spirit = 96.0 if data.get('spirit_strength') in (None, '') else _number(data, 'spirit_strength')

    if target <= current:
        raise ValidationError(TARGET_ABOVE_CURRENT, field='target_alcohol')
    if spirit <= target:
        raise ValidationError('Spirit strength must be higher than target alcohol.', field='spirit_strength')
    if not 0 <= current <= 100:
        raise ValidationError('Current alcohol must be between 0 and 100.', field='current_alcohol')
    if not 0 <= target <= 100:
        raise ValidationError('Target alcohol must be between 0 and 100.', field='target_alcohol')

    spirit_volume = volume * (target - current) / (spirit - target)
    final_volume = volume + spirit_volume
    final_alcohol = (volume * current + spirit_volume * spirit) / final_volume
    return {
        'spirit_volume': round(spirit_volume, 3),
        'final_volume': round(final_volume, 3),
        'final_alcohol': round(final_alcohol, 2),
        'absolute_alcohol': round(spirit_volume * spirit / 100, 3),
        'dilution_factor': round(final_volume / volume, 3),
        'spirit_strength': spirit,
    }


def pearson_square(alcohol_1, alcohol_2, target):
    """Parts of each component (percent) needed to reach ``target``."""
    if not min(alcohol_1, alcohol_2) <= target <= max(alcohol_1, alcohol_2):
        raise ValidationError('Target alcohol must be between the two component alcohols.',
                              field='target_alcohol')
    diff_1 = abs(target - alcohol_2)
    diff_2 = abs(target - alcohol_1)
    total = diff_1 + diff_2
    if total == 0:
        raise ValidationError('Component alcohols must differ.', field='alcohol_1')
    return {
        'parts_1': round(diff_1 / total * 100, 2),
        'parts_2': round(diff_2 / total * 100, 2),
        'ratio': f'{round(diff_1)}:{round(diff_2)}',
    }


def calculate_pearson_square(data):
    return pearson_square(
        _number(data, 'alcohol_1'), _number(data, 'alcohol_2'), _number(data, 'target_alcohol')
    )


def water_warning(dilution_percent):
    if dilution_percent > 25:
        return 'WARNING: Very high dilution (>25%). This will significantly impact wine quality and may not be legal.'
    if dilution_percent > 20:
        return 'CAUTION: High dilution (>20%). This may noticeably affect wine body, flavor, and mouthfeel.'
    if dilution_percent > 10:
        return 'Moderate dilution. Some impact on wine structure expected.'
    return 'Minor dilution. Minimal impact on wine character.'


def calculate_water(data):
    """Water needed to dilute a parameter from its current to a target value."""
    volume = _volume(data)
    current = _positive(data, 'current_value')
    target = _positive(data, 'target_value')
    if target >= current:
        raise ValidationError('Target value must be lower than current value for dilution.',
                              field='target_value')

    final_volume = current * volume / target
    water = final_volume - volume
    dilution = water / volume * 100
    return {
        'water_volume': round(water, 2),
        'final_volume': round(final_volume, 2),
        'final_concentration': round(current * volume / final_volume, 2),
        'dilution_percent': round(dilution, 1),
        'is_within_recommendation': dilution <= MAX_RECOMMENDED_DILUTION,
        'max_recommended': MAX_RECOMMENDED_DILUTION,
        'parameter': data.get('parameter'),
        'warning': water_warning(dilution),
    }


def bentonite_note(dosage):
    if dosage < 20:
        return 'Low dosage - suitable for wines with minimal protein instability'
    if dosage <= 50:
        return 'Standard dosage - suitable for most white wines'
    if dosage <= 80:
        return 'High dosage - for wines with significant protein haze risk'
    return 'Very high dosage - may strip wine color and body. Consider bench trials first'


def calculate_bentonite(data):
    """Bentonite (g) for a dosage in g/hL, plus hydration water (1:10)."""
    volume = _volume(data)
    dosage = _positive(data, 'dosage')
    if dosage < 10 or dosage > 150:
        logger.warning('Bentonite dosage %s g/hL outside typical range (20-100 g/hL)', dosage)

    amount = dosage * volume / 100
    water = amount * 10
    return {
        'bentonite_amount': round(amount, 1),
        'water_amount': round(water),
        'bentonite_amount_kg': round(amount / 1000, 2),
        'water_amount_l': round(water / 1000, 2),
        'dosage_rate': dosage,
        'notes': bentonite_note(dosage),
    }


def calculate_carbon(data):
    rate = _positive(data, 'carbon_amount')
    volume = _volume(data)
    return {'amount_g': round(rate * volume / 1000, 1)}


def calculate_creme_of_tartar(data):
    rate = _positive(data, 'addition_rate')
    volume = _volume(data)
    return {'amount_kg': round(rate * volume / 1000000, 3)}


def calculate_copper_sulfate_large(data):
    rate = _positive(data, 'copper_rate')
    volume = _volume(data)
    return {'copper_sulfate_g': round(rate * volume / (1000 * CU_FRACTION), 2)}


def calculate_copper_sulfate_small(data):
    """Stock solution volume of CuSO4.5H2O for bench-trial sized volumes."""
    rate = _positive(data, 'copper_rate')
    volume = _volume(data)
    stock = _positive(data, 'stock_concentration')

    volume_l = volume / 1000 if data.get('volume_unit') == 'mL' else volume
    copper_sulfate_mg = rate * volume_l / CU_FRACTION
    # percent is g/100 mL
    stock_g_per_l = stock * 10 if data.get('stock_unit') == 'percent' else stock
    solution_ml = copper_sulfate_mg / stock_g_per_l
    return {
        'solution_volume_ml': round(solution_ml, 2),
        'solution_volume_ul': round(solution_ml * 1000),
    }


def calculate_dap_addition(data):
    dap_required = _number(data, 'dap_required')
    if dap_required <= 0:
        raise ValidationError(INVALID_INPUT, field='dap_required')
    volume = _volume(data)
    return {'dap_amount': round(dap_required * volume / 1000, 2)}


def calculate_dap_pre_fermentation(data):
    initial = _number(data, 'initial_yan')
    required = _number(data, 'required_yan')
    if initial < 0 or required < 0:
        raise ValidationError(INVALID_INPUT, field='initial_yan' if initial < 0 else 'required_yan')
    volume = _volume(data)

    deficit = required - initial
    if deficit <= 0:
        return {'dap_amount': 0}
    return {'dap_amount': round(deficit * volume * YAN_TO_DAP / 1000, 2)}


def calculate_yan_dap(data):
    """Convert YAN to DAP (mg/L) or back; YAN wins when both are given."""
    for key in ('yan_amount', 'dap_amount'):
        if data.get(key) in (None, ''):
            continue
        value = _number(data, key)
        if value < 0:
            raise ValidationError(INVALID_INPUT, field=key)
        if key == 'yan_amount':
            return {'yan_result': round(value, 2), 'dap_result': round(value * YAN_TO_DAP, 2)}
        return {'yan_result': round(value / YAN_TO_DAP, 2), 'dap_result': round(value, 2)}
    raise ValidationError(INVALID_INPUT)


# Linear factors to the base unit of each category. Alcohol factors are
# multiples of ABV.
CONVERSION_FACTORS = {
    'volume': {
        'liters': 1,
        'milliliters': 0.001,
        'hectoliters': 100,
        'gallons_us': 3.78541,
        'gallons_uk': 4.54609,
        'barrels': 119.24,
        'bottles_750ml': 0.75,
        'magnums': 1.5,
    },
    'weight': {
        'grams': 1,
        'kilograms': 1000,
        'milligrams': 0.001,
        'pounds': 453.592,
        'ounces': 28.3495,
    },
    'alcohol': {
        'abv': 1,
        'proof_us': 2,
        'proof_uk': 1.75,
    },
}
TEMPERATURE_UNITS = ('celsius', 'fahrenheit', 'kelvin')
DENSITY_UNITS = ('brix', 'baume', 'sg', 'plato')
BRIX_PER_BAUME = 1.8


def _unit(data, key, units):
    unit = data.get(key)
    if not isinstance(unit, str) or unit not in units:
        raise ValidationError(f'Unknown unit {unit!r}.', field=key)
    return unit


def convert_temperature(value, from_unit, to_unit):
    if from_unit == 'fahrenheit':
        celsius = (value - 32) * 5 / 9
    elif from_unit == 'kelvin':
        celsius = value - 273.15
    else:
        celsius = value

    if to_unit == 'fahrenheit':
        return celsius * 9 / 5 + 32
    if to_unit == 'kelvin':
        return celsius + 273.15
    return celsius


def sg_to_brix(sg):
    delta = sg - 1
    return 182.4601 * delta + 142.1868 * delta ** 2 + 500.5255 * delta ** 3


def brix_to_sg(brix):
    return 1 + brix / 258.6 - (brix / 258.6) ** 2 * 0.00898


def convert_density(value, from_unit, to_unit):
    """Sugar density via Brix; Plato is taken as equal to Brix."""
    if from_unit == 'baume':
        brix = value * BRIX_PER_BAUME
    elif from_unit == 'sg':
        brix = sg_to_brix(value)
    else:
        brix = value

    if to_unit == 'baume':
        return brix / BRIX_PER_BAUME
    if to_unit == 'sg':
        return brix_to_sg(brix)
    return brix


def calculate_conversion(data):
    value = _number(data, 'value', 'Invalid value.')
    category = data.get('category')

    if category == 'temperature':
        from_unit = _unit(data, 'from_unit', TEMPERATURE_UNITS)
        to_unit = _unit(data, 'to_unit', TEMPERATURE_UNITS)
        converted = convert_temperature(value, from_unit, to_unit)
    elif category == 'density':
        from_unit = _unit(data, 'from_unit', DENSITY_UNITS)
        to_unit = _unit(data, 'to_unit', DENSITY_UNITS)
        converted = convert_density(value, from_unit, to_unit)
    elif category == 'alcohol':
        factors = CONVERSION_FACTORS['alcohol']
        from_unit = _unit(data, 'from_unit', factors)
        to_unit = _unit(data, 'to_unit', factors)
        converted = value / factors[from_unit] * factors[to_unit]
    elif isinstance(category, str) and category in CONVERSION_FACTORS:
        factors = CONVERSION_FACTORS[category]
        from_unit = _unit(data, 'from_unit', factors)
        to_unit = _unit(data, 'to_unit', factors)
        converted = value * factors[from_unit] / factors[to_unit]
    else:
        raise ValidationError(f'Unknown conversion category {category!r}.', field='category')

    return {
        'converted': round(converted, 5),
        'original_value': value,
        'original_unit': from_unit,
        'target_unit': to_unit,
        'category': category,
    }


# DAP is about 21% nitrogen by weight.
DAP_NITROGEN_MG_PER_G = 210
DAP_MAX_LEGAL = 100  # g/hL
DAP_MAX_RECOMMENDED = 40  # g/hL
DAP_TIMING = {
    'first_addition': {
        'timing': 'At yeast inoculation or within first 24 hours',
        'amount': '50% of total dose',
        'reason': 'Supports initial yeast growth phase',
    },
    'second_addition': {
        'timing': 'At 1/3 sugar depletion (around 1.060 SG)',
        'amount': '50% of total dose',
        'reason': 'Maintains fermentation momentum, prevents stuck fermentation',
    },
    'warning': 'Do not add after 1/2 sugar depletion - can produce unwanted hydrogen sulfide (H2S)',
}


def dap_notes(dosage_rate, final_yan):
    if dosage_rate > DAP_MAX_LEGAL:
        notes = ['ILLEGAL: Dosage exceeds legal maximum in most regions']
    elif dosage_rate > 60:
        notes = ['WARNING: Very high dosage may cause off-flavors and excessive foaming']
    elif dosage_rate > DAP_MAX_RECOMMENDED:
        notes = ['CAUTION: High dosage - consider using complex yeast nutrients instead']
    elif dosage_rate >= 20:
        notes = ['Standard dosage range for most fermentations']
    else:
        notes = ['Low dosage - suitable for musts with adequate natural YAN']

    if final_yan:
        if final_yan < 140:
            notes.append('Final YAN still below minimum (140 mg/L) - risk of stuck fermentation')
        elif final_yan <= 200:
            notes.append('Adequate YAN for most white wine fermentations')
        elif final_yan <= 300:
            notes.append('Good YAN level for red wines and high-alcohol fermentations')
        else:
            notes.append('Very high YAN - may lead to excessive yeast growth and off-flavors')
    return '\n'.join(notes)


def calculate_dap(data):
    """DAP for a direct g/hL dosage, or for the gap between current and target YAN.

    A dosage wins when both are given.
    """
    volume = _volume(data)
    has_current = data.get('current_yan') not in (None, '')
    has_target = data.get('target_yan') not in (None, '')

    if data.get('dosage') not in (None, ''):
        dosage = _positive(data, 'dosage')
        dap_amount = dosage * (volume / 100)
        nitrogen_added = dap_amount * DAP_NITROGEN_MG_PER_G / volume
        final_yan = (_number(data, 'current_yan') if has_current else 0) + nitrogen_added
    elif has_current and has_target:
        current = _number(data, 'current_yan')
        target = _number(data, 'target_yan')
        if target <= current:
            raise ValidationError('Target YAN must be greater than current YAN.', field='target_yan')
        nitrogen_added = target - current
        dap_amount = nitrogen_added * volume / DAP_NITROGEN_MG_PER_G
        final_yan = target
    else:
        raise ValidationError('Either provide dosage or both current YAN and target YAN.',
                              field='dosage')

    dosage_rate = dap_amount / (volume / 100)
    return {
        'dap_amount': round(dap_amount, 1),
        'dap_amount_kg': round(dap_amount / 1000, 2),
        'dosage_rate': round(dosage_rate, 1),
        'nitrogen_added': round(nitrogen_added, 1),
        'final_yan': round(final_yan),
        'is_legal': dosage_rate <= DAP_MAX_LEGAL,
        'is_recommended': dosage_rate <= DAP_MAX_RECOMMENDED,
        'max_legal': DAP_MAX_LEGAL,
        'max_recommended': DAP_MAX_RECOMMENDED,
        'application_timing': DAP_TIMING,
        'notes': dap_notes(dosage_rate, final_yan),
    }


CALCULATORS = {
    'pms': calculate_pms,
    'so2': calculate_so2,
    'molecular_so2': calculate_molecular_so2,
    'acid': calculate_acid,
    'ascorbic_acid': calculate_ascorbic_acid,
    'fortification': calculate_fortification,
    'pearson_square': calculate_pearson_square,
    'water': calculate_water,
    'bentonite': calculate_bentonite,
    'carbon': calculate_carbon,
    'creme_of_tartar': calculate_creme_of_tartar,
    'copper_sulfate_large': calculate_copper_sulfate_large,
    'copper_sulfate_small': calculate_copper_sulfate_small,
    'dap_addition': calculate_dap_addition,
    'dap_pre_fermentation': calculate_dap_pre_fermentation,
    'yan_dap': calculate_yan_dap,
    'dap': calculate_dap,
    'conversion': calculate_conversion,
}


def run_calculator(name, data):
    calculator = CALCULATORS.get(name)
    if calculator is None:
        raise KeyError(name)
    data = data or {}
    if not isinstance(data, Mapping):
        raise ValidationError('Calculator input must be an object.', field='payload')
    return calculator(data)
