# secure_exam/utils/name_matching.py


def levenshtein_distance(a, b):
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                current[j - 1] + 1,      # insertion
                previous[j] + 1,         # deletion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def name_similarity(name1, name2):
    """Similarity in [0, 1]: 1 - edit distance / length of the longer name."""
    longer, shorter = (name1, name2) if len(name1) > len(name2) else (name2, name1)
    if len(longer) == 0:
        return 1.0
    return (len(longer) - levenshtein_distance(longer, shorter)) / len(longer)
