"""Structure -> fingerprint provider (ECFP4 by default)."""
from rdkit import Chem
from rdkit.Chem import MACCSkeys, rdFingerprintGenerator

from .exceptions import BuildError


def mol_from_smiles(smiles: str):
    if not isinstance(smiles, str) or not smiles.strip():
        raise BuildError(smiles, "empty structure")
    mol = Chem.MolFromSmiles(smiles)
    if mol is None:
        raise BuildError(smiles, "unparsable SMILES")
    if mol.GetNumAtoms() == 0:
        raise BuildError(smiles, "structure has no atoms")
    return mol


class FingerprintProvider:
    """Callable `smiles -> ExplicitBitVect`; raises BuildError on bad input.

    Picklable so it can be shipped to joblib workers; the RDKit generator is
    rebuilt lazily in each process.
    """

    def __init__(self, kind: str = "ecfp4", n_bits: int = 2048, radius: int = 2):
        if kind not in {"ecfp4", "morgan", "fcfp4", "maccs", "rdkit"}:
            raise ValueError(f"Unknown fingerprint kind '{kind}'")
        self.kind = kind
        self.n_bits = int(n_bits)
        self.radius = 2 if kind in {"ecfp4", "fcfp4"} else int(radius)
        self._gen = None

    def __getstate__(self):
        state = self.__dict__.copy()
        state["_gen"] = None
        return state

    def __repr__(self):
        return f"FingerprintProvider(kind={self.kind!r}, n_bits={self.n_bits}, radius={self.radius})"

    def _generator(self):
        if self._gen is None:
            if self.kind in {"ecfp4", "morgan"}:
                self._gen = rdFingerprintGenerator.GetMorganGenerator(radius=self.radius, fpSize=self.n_bits)
            elif self.kind == "fcfp4":
                self._gen = rdFingerprintGenerator.GetMorganGenerator(
                    radius=self.radius, fpSize=self.n_bits,
                    atomInvariantsGenerator=rdFingerprintGenerator.GetMorganFeatureAtomInvGen())
            elif self.kind == "rdkit":
                self._gen = rdFingerprintGenerator.GetRDKitFPGenerator(fpSize=self.n_bits)
        return self._gen

    def __call__(self, smiles: str):
        mol = mol_from_smiles(smiles)
        try:
            if self.kind == "maccs":
                return MACCSkeys.GenMACCSKeys(mol)
            return self._generator().GetFingerprint(mol)
        except (RuntimeError, TypeError, ValueError) as exc:
            raise BuildError(smiles, f"fingerprint failed: {exc}") from exc


def fingerprint_provider(kind="ecfp4", n_bits=2048, radius=2) -> FingerprintProvider:
    return FingerprintProvider(kind, n_bits=n_bits, radius=radius)
