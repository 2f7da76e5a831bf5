"""
Dependency checking for pgsearch pipeline.
"""

import shutil
import sys
from typing import Optional

from .config import ToolPaths


def check_dependencies(tools: Optional[ToolPaths] = None):
    """Check if the external tools of the pipeline are available."""
    tools = tools or ToolPaths()
    missing = []

    for dep in tools.executables():
        if not shutil.which(dep):
            missing.append(dep)

    if missing:
        sys.stderr.write(
            f"Missing required dependencies: {', '.join(missing)}\n"
            "Please install the following tools:\n"
            "- gffread: conda install -c bioconda gffread\n"
            "- transeq (EMBOSS): conda install -c bioconda emboss\n"
            "- Digestor (OpenMS): conda install -c bioconda openms\n"
            "- peptide_pI_annotator.py, pi_database_splitter.py: spectral-pi-split scripts on PATH\n"
            "- msstitch: pip install msstitch\n"
            "- java (for MS-GF+): https://github.com/MSGFPlus/msgfplus\n"
            "- msgf2pin, percolator: percolator with its converters\n"
        )
        sys.exit(1)
