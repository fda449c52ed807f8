"""Local medication name reference and known interaction pairs.

Names are matched on their first word, lowercased, with brand names mapped to
the generic name ("Coumadin 5mg" -> "warfarin").
"""
import logging

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 10
MIN_SUGGESTION_LENGTH = 2

COMMON_MEDICATIONS = [
    'Acetaminophen', 'Allopurinol', 'Alprazolam', 'Amlodipine', 'Amoxicillin',
    'Aspirin', 'Atorvastatin', 'Calcium carbonate', 'Carbidopa-levodopa', 'Carvedilol',
    'Clopidogrel', 'Dextromethorphan', 'Digoxin', 'Diphenhydramine', 'Donepezil',
    'Escitalopram', 'Furosemide', 'Gabapentin', 'Hydrochlorothiazide', 'Ibuprofen',
    'Insulin glargine', 'Levothyroxine', 'Lisinopril', 'Losartan', 'Memantine',
    'Metformin', 'Metoprolol', 'Naproxen', 'Omeprazole', 'Pantoprazole',
    'Potassium chloride', 'Prednisone', 'Quetiapine', 'Rivastigmine', 'Sertraline',
    'Simvastatin', 'Tamsulosin', 'Tramadol', 'Vitamin D3', 'Warfarin',
]

BRAND_NAMES = {
    'advil': 'ibuprofen',
    'aleve': 'naproxen',
    'aricept': 'donepezil',
    'benadryl': 'diphenhydramine',
    'coumadin': 'warfarin',
    'eliquis': 'apixaban',
    'glucophage': 'metformin',
    'lasix': 'furosemide',
    'lipitor': 'atorvastatin',
    'motrin': 'ibuprofen',
    'namenda': 'memantine',
    'norvasc': 'amlodipine',
    'plavix': 'clopidogrel',
    'prilosec': 'omeprazole',
    'synthroid': 'levothyroxine',
    'tylenol': 'acetaminophen',
    'ultram': 'tramadol',
    'zestril': 'lisinopril',
    'zocor': 'simvastatin',
    'zoloft': 'sertraline',
}

KNOWN_INTERACTIONS = {
    frozenset({'warfarin', 'aspirin'}): ('high', 'Warfarin with aspirin increases the risk of bleeding.'),
    frozenset({'warfarin', 'ibuprofen'}): ('high', 'Warfarin with ibuprofen increases the risk of bleeding.'),
    frozenset({'warfarin', 'naproxen'}): ('high', 'Warfarin with naproxen increases the risk of bleeding.'),
    frozenset({'sertraline', 'tramadol'}): ('high', 'Sertraline with tramadol can cause serotonin syndrome and seizures.'),
    frozenset({'clopidogrel', 'omeprazole'}): ('moderate', 'Omeprazole can reduce how well clopidogrel works.'),
    frozenset({'lisinopril', 'potassium'}): ('moderate', 'Lisinopril with potassium supplements can raise potassium levels.'),
    frozenset({'lisinopril', 'ibuprofen'}): ('moderate', 'Ibuprofen can weaken blood pressure control and strain the kidneys.'),
    frozenset({'simvastatin', 'amlodipine'}): ('moderate', 'Amlodipine raises simvastatin levels; the simvastatin dose may need a limit.'),
    frozenset({'donepezil', 'diphenhydramine'}): ('moderate', 'Diphenhydramine can make donepezil less effective.'),
    frozenset({'donepezil', 'metoprolol'}): ('moderate', 'Both slow the heart rate; watch for dizziness or fainting.'),
    frozenset({'memantine', 'dextromethorphan'}): ('low', 'Memantine with dextromethorphan may increase dizziness and confusion.'),
    frozenset({'levothyroxine', 'calcium'}): ('low', 'Calcium blocks levothyroxine absorption; take them 4 hours apart.'),
}


def generic_name(name):
    """The lowercase generic name for a medication as entered ('Zocor 20 mg' -> 'simvastatin')."""
    words = (name or '').strip().lower().split()
    if not words:
        return ''
    first = words[0]
    return BRAND_NAMES.get(first, first)


def get_suggestions(partial, limit=SUGGESTION_LIMIT):
    """Names starting with `partial` first, then names containing it."""
    needle = partial.strip().lower()
    brand_match = BRAND_NAMES.get(needle)
    starts = [name for name in COMMON_MEDICATIONS if name.lower().startswith(needle)]
    contains = [name for name in COMMON_MEDICATIONS if needle in name.lower() and name not in starts]
    suggestions = starts + contains
    if brand_match:
        generic = next((name for name in COMMON_MEDICATIONS if name.lower() == brand_match), None)
        if generic and generic not in suggestions:
            suggestions.insert(0, generic)
    return suggestions[:limit]


def normalize_name(name):
    """Best matching reference name, or the name unchanged when nothing matches."""
    suggestions = get_suggestions(name) if len(name.strip()) >= MIN_SUGGESTION_LENGTH else []
    return suggestions[0] if suggestions else name


def check_interactions(medication_names):
    """Known interactions between any two of the given medications."""
    generics = []
    for name in medication_names:
        generic = generic_name(name)
        if generic and generic not in generics:
            generics.append(generic)

    interactions = []
    for i, first in enumerate(generics):
        for second in generics[i + 1:]:
            known = KNOWN_INTERACTIONS.get(frozenset({first, second}))
            if known:
                severity, description = known
                interactions.append({
                    'medications': [first, second],
                    'severity': severity,
                    'description': description,
                })
    logger.debug(f"Checked {len(generics)} medications, {len(interactions)} known interactions")
    return {'success': True, 'interactions': interactions}
