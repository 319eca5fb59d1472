from dissect.cstruct import cstruct

pdb_def = """
/////////////////////////////////////////////////////////////////////////
// PDB generic definitions
/////////////////////////////////////////////////////////////////////////
typedef uint32 OFF;
typedef uint32 CB;
typedef uint16 SN;

typedef uint32 CV_typ_t;
typedef CV_typ_t TI;

struct OffCb {              // offset, cb pair
    OFF off;
    CB  cb;
};

struct DATA_STREAM_V7 {
    uint32 stream_size;
};

struct ROOT_STREAM_V7 {
    uint32 dStreams;
    DATA_STREAM_V7 streamLengths[dStreams];
};

struct PDB7_HEADER {
    char signature[32];
    uint32 page_size;
    uint32 alloc_table_ptr;
    uint32 num_file_pages;
    uint32 root_size;
    uint32 reserved;
    uint32 root_page_index;
};

struct DATA_STREAM_V2 {
    uint32 stream_size;
    uint32 reserved;
};

struct ROOT_STREAM_V2 {
    uint16 dStreams;
    uint16 reserved;
    DATA_STREAM_V2 streamLengths[dStreams];
};

struct PDB2_HEADER {
    char signature[44];
    uint32 page_size;
    uint16 start_page;
    uint16 num_file_pages;
    uint32 root_size;
    uint32 reserved;
};

/////////////////////////////////////////////////////////////////////////
// PDB info stream (stream 1) and the /names string table
//
// https://github.com/microsoft/microsoft-pdb/blob/master/PDB/include/pdb.h
// https://github.com/microsoft/microsoft-pdb/blob/master/PDB/include/nmtni.h
/////////////////////////////////////////////////////////////////////////

enum PDBIMPV : uint32 {
    PDBImpvVC2 = 19941610,
    PDBImpvVC4 = 19950623,
    PDBImpvVC41 = 19950814,
    PDBImpvVC50 = 19960307,
    PDBImpvVC98 = 19970604,
    PDBImpvVC70Dep = 19990604,
    PDBImpvVC70 = 20000404,
    PDBImpvVC80 = 20030901,
    PDBImpvVC110 = 20091201,
    PDBImpvVC140 = 20140508,
};

struct GUID {
    uint32 Data1;
    uint16 Data2;
    uint16 Data3;
    char Data4[8];
};

struct PdbStreamHeader {
    uint32 version;         // PDBIMPV
    uint32 signature;       // time_t of the last write
    uint32 age;
};

struct PdbStreamHeader70 {
    uint32 version;         // PDBIMPV
    uint32 signature;
    uint32 age;
    GUID guid;
};

struct NameTableHeader {
    uint32 magic;           // 0xEFFEEFFE
    uint32 version;         // hash version
    CB cbStrings;           // size of the string buffer that follows
};

/////////////////////////////////////////////////////////////////////////
// TPI/IPI specific definitions
//
// General overview: https://github.com/microsoft/microsoft-pdb/blob/master/PDB/dbi/tpi.h
/////////////////////////////////////////////////////////////////////////

enum TPIIMPV : uint32 {
    impv40 = 19950410,
    impv41 = 19951122,
    impv50Interim = 19960307,
    impv50 = 19961031,
    impv70 = 19990903,
    impv80 = 20040203,
};

struct TpiHash {
    SN      sn;             // main hash stream
    SN      snPad;          // auxilliary hash data if necessary
    CB      cbHashKey;      // size of hash key
    uint32  cHashBuckets;   // how many buckets we have
    OffCb   offcbHashVals;  // offcb of hashvals
    OffCb   offcbTiOff;     // offcb of (TI,OFF) pairs
    OffCb   offcbHashAdj;   // offcb of hash head list
};

struct TpiHeader {          // type database header:
    uint32  vers;           // TPIIMPV, version which created this TypeServer
    CB      cbHdr;          // size of the header, allows easier upgrading and backwards compatibility
    TI      tiMin;          // lowest TI
    TI      tiMax;          // highest TI + 1
    CB      cbGprec;        // count of bytes used by the gprec which follows.
    TpiHash tpihash;        // hash stream schema
};

struct TpiRecordHeader {
    uint16 length;          // length of the record, without this field
    uint16 leaf;
};

// Typing
// https://github.com/microsoft/microsoft-pdb/blob/082c5290e5aff028ae84e43affa8be717aa7af73/include/cvinfo.h

enum LEAF_ENUM_e : uint16 {
    LF_MODIFIER         = 0x1001,
    LF_POINTER          = 0x1002,
    LF_PROCEDURE        = 0x1008,
    LF_MFUNCTION        = 0x1009,
    LF_VTSHAPE          = 0x000a,
    LF_ARGLIST          = 0x1201,
    LF_FIELDLIST        = 0x1203,
    LF_BITFIELD         = 0x1205,
    LF_METHODLIST       = 0x1206,

    LF_BCLASS           = 0x1400,
    LF_VBCLASS          = 0x1401,
    LF_IVBCLASS         = 0x1402,
    LF_FRIENDFCN_ST     = 0x1403,
    LF_INDEX            = 0x1404,
    LF_MEMBER_ST        = 0x1405,
    LF_STMEMBER_ST      = 0x1406,
    LF_METHOD_ST        = 0x1407,
    LF_NESTTYPE_ST      = 0x1408,
    LF_VFUNCTAB         = 0x1409,
    LF_FRIENDCLS        = 0x140a,
    LF_ONEMETHOD_ST     = 0x140b,
    LF_VFUNCOFF         = 0x140c,
    LF_NESTTYPEEX_ST    = 0x140d,
    LF_MEMBERMODIFY_ST  = 0x140e,
    LF_MANAGED_ST       = 0x140f,

    LF_ARRAY            = 0x1503,
    LF_CLASS            = 0x1504,
    LF_STRUCTURE        = 0x1505,
    LF_UNION            = 0x1506,
    LF_ENUM             = 0x1507,
    LF_ENUMERATE        = 0x1502,
    LF_FRIENDFCN        = 0x150c,
    LF_MEMBER           = 0x150d,
    LF_STMEMBER         = 0x150e,
    LF_METHOD           = 0x150f,
    LF_NESTTYPE         = 0x1510,
    LF_ONEMETHOD        = 0x1511,
    LF_NESTTYPEEX       = 0x1512,
    LF_INTERFACE        = 0x1519,
    LF_BINTERFACE       = 0x151a,
    LF_VFTABLE          = 0x151d,

    // id leaf records, stored in the IPI stream
    LF_FUNC_ID          = 0x1601,    // global func ID
    LF_MFUNC_ID         = 0x1602,    // member func ID
    LF_BUILDINFO        = 0x1603,    // build info: tool, version, command line, src/pdb file
    LF_SUBSTR_LIST      = 0x1604,    // similar to LF_ARGLIST, for list of sub strings
    LF_STRING_ID        = 0x1605,    // string ID
    LF_UDT_SRC_LINE     = 0x1606,
    LF_UDT_MOD_SRC_LINE = 0x1607,

    LF_NUMERIC          = 0x8000,
    LF_CHAR             = 0x8000,
    LF_SHORT            = 0x8001,
    LF_USHORT           = 0x8002,
    LF_LONG             = 0x8003,
    LF_ULONG            = 0x8004,
    LF_REAL32           = 0x8005,
    LF_REAL64           = 0x8006,
    LF_REAL80           = 0x8007,
    LF_REAL128          = 0x8008,
    LF_QUADWORD         = 0x8009,
    LF_UQUADWORD        = 0x800a,
    LF_VARSTRING        = 0x8010,
    LF_OCTWORD          = 0x8017,
    LF_UOCTWORD         = 0x8018,
};

struct CV_prop_t {
    USHORT  packed      :1;     // true if structure is packed
    USHORT  ctor        :1;     // true if constructors or destructors present
    USHORT  ovlops      :1;     // true if overloaded operators present
    USHORT  isnested    :1;     // true if this is a nested class
    USHORT  cnested     :1;     // true if this class contains nested types
    USHORT  opassign    :1;     // true if overloaded assignment (=)
    USHORT  opcast      :1;     // true if casting methods
    USHORT  fwdref      :1;     // true if forward reference (incomplete defn)
    USHORT  scoped      :1;     // scoped definition
    USHORT  hasuniquename :1;   // true if there is a decorated name following the regular name
    USHORT  sealed      :1;     // true if class cannot be used as a base class
    USHORT  hfa         :2;     // CV_HFA_e
    USHORT  intrinsic   :1;     // true if class is an intrinsic type (e.g. __m128d)
    USHORT  mocom       :2;     // CV_MOCOM_UDT_e
};

struct CV_modifier_t {
    USHORT  MOD_const       :1;
    USHORT  MOD_volatile    :1;
    USHORT  MOD_unaligned   :1;
    USHORT  MOD_unused      :13;
};

struct CV_fldattr_t {
    USHORT  access      :2;     // access protection CV_access_t
    USHORT  mprop       :3;     // method properties CV_methodprop_t
    USHORT  pseudo      :1;     // compiler generated fcn and does not exist
    USHORT  noinherit   :1;     // true if class cannot be inherited
    USHORT  noconstruct :1;     // true if class cannot be constructed
    USHORT  compgenx    :1;     // compiler generated fcn and does exist
    USHORT  sealed      :1;     // true if method cannot be overridden
    USHORT  unused      :6;     // unused
};

enum CV_methodprop_e : uint8 {
    CV_MTvanilla        = 0x00,
    CV_MTvirtual        = 0x01,
    CV_MTstatic         = 0x02,
    CV_MTfriend         = 0x03,
    CV_MTintro          = 0x04,
    CV_MTpurevirt       = 0x05,
    CV_MTpureintro      = 0x06,
};

enum CV_ptrmode_e : uint8 {
    CV_PTR_MODE_PTR         = 0x00, // "normal" pointer
    CV_PTR_MODE_LVREF       = 0x01, // l-value reference
    CV_PTR_MODE_PMEM        = 0x02, // pointer to data member
    CV_PTR_MODE_PMFUNC      = 0x03, // pointer to member function
    CV_PTR_MODE_RVREF       = 0x04, // r-value reference
};

// The fixed part of the type records, numeric leaves and names are read separately

struct LF_MODIFIER {
    CV_typ_t        modified_type;  // modified type
    CV_modifier_t   attr;           // modifier attribute modifier_t
};

struct LF_POINTER {
    CV_typ_t        utype;          // type index of the underlying type
    uint32          attr;           // lfPointerAttr, ptrtype:5 ptrmode:3 ... size:6 at bit 13
};

struct LF_ARGLIST {
    uint32          count;          // number of arguments
    CV_typ_t        arg[count];
};

struct LF_ARRAY {
    CV_typ_t        elemtype;       // type index of element type
    CV_typ_t        idxtype;        // type index of indexing type
};

struct LF_CLASS {
    uint16          count;          // count of number of elements in class
    CV_prop_t       property;       // property attribute field (prop_t)
    CV_typ_t        field;          // type index of LF_FIELD descriptor list
    CV_typ_t        derived;        // type index of derived from list if not zero
    CV_typ_t        vshape;         // type index of vshape table for this class
};

struct LF_UNION {
    uint16          count;          // count of number of elements in class
    CV_prop_t       property;       // property attribute field
    CV_typ_t        field;          // type index of LF_FIELD descriptor list
};

struct LF_ENUM {
    uint16          count;          // count of number of elements in class
    CV_prop_t       property;       // property attribute field
    CV_typ_t        utype;          // underlying type of the enum
    CV_typ_t        field;          // type index of LF_FIELD descriptor list
};

struct LF_BITFIELD {
    CV_typ_t        base_type;
    uint8           bits;
    uint8           position;
};

struct LF_PROCEDURE {
    CV_typ_t        rvtype;         // type index of return value
    uint8           calltype;       // calling convention (CV_call_t)
    uint8           funcattr;       // attributes
    uint16          parmcount;      // number of parameters
    CV_typ_t        arglist;        // type index of argument list
};

struct LF_MFUNCTION {
    CV_typ_t        rvtype;         // type index of return value
    CV_typ_t        classtype;      // type index of containing class
    CV_typ_t        thistype;       // type index of this pointer (model specific)
    uint8           calltype;       // calling convention (call_t)
    uint8           funcattr;       // attributes
    uint16          parmcount;      // number of parameters
    CV_typ_t        arglist;        // type index of argument list
    int32           thisadjust;     // this adjuster
};

struct LF_MEMBER {
    CV_fldattr_t    attr;           // attribute mask
    CV_typ_t        index;          // index of type record for field
};

struct LF_ONEMETHOD {
    CV_fldattr_t    attr;           // attribute mask
    CV_typ_t        index;          // index of type record for the method
};

struct LF_FUNC_ID {
    uint32          scope;          // parent scope of the ID, 0 if global
    CV_typ_t        func_type;      // function type
    char            name[];
};

struct LF_MFUNC_ID {
    CV_typ_t        parent;         // type index of parent
    CV_typ_t        func_type;      // function type
    char            name[];
};

struct LF_BUILDINFO {
    uint16          count;          // number of arguments
    uint32          arg[count];     // arguments as CodeItemId
};

struct LF_SUBSTR_LIST {
    uint32          count;
    uint32          arg[count];
};

struct LF_STRING_ID {
    uint32          substrings;     // ID to list of sub string IDs
    char            name[];
};

/////////////////////////////////////////////////////////////////////////
// DBI specific definitions
// https://github.com/microsoft/microsoft-pdb/blob/master/PDB/dbi/dbi.h
// https://github.com/ungoogled-software/syzygy/blob/master/syzygy/pdb/pdb_data.h
/////////////////////////////////////////////////////////////////////////
struct DbiSectionContrib {
    int16_t section;
    int16_t pad1;
    int32_t offset;
    int32_t contrib_size;
    uint32_t flags;
    int16_t module;
    int16_t pad2;
    uint32_t data_crc;
    uint32_t reloc_crc;
};

struct DbiModuleInfoBase {
    uint32_t opened;
    DbiSectionContrib section;
    uint16_t flags;
    int16_t stream;
    uint32_t symbol_bytes;
    uint32_t old_lines_bytes;
    uint32_t lines_bytes;
    int16_t num_files;
    uint16_t padding;
    uint32_t offsets;
    uint32_t num_source;
    uint32_t num_compiler;
    char module_name[];
    char object_name[];
    // There are two trailing null-terminated 8-bit strings, the first being the
    // module_name and the second being the object_name. Then this structure is
    // padded with zeros to have a length that is a multiple of 4.
};

struct DbiHeader {
    ULONG       verSignature;
    ULONG       verHdr;
    ULONG       age;
    SN          snGSSyms;
    USHORT      usVerAll;
    SN          snPSSyms;
    USHORT      usVerPdbDllBuild;   // build version of the pdb dll that built this pdb last.
    SN          snSymRecs;
    USHORT      usVerPdbDllRBld;    // rbld version of the pdb dll that built this pdb last.
    CB          cbGpModi;           // size of rgmodi substream
    CB          cbSC;               // size of Section Contribution substream
    CB          cbSecMap;
    CB          cbFileInfo;
    CB          cbTSMap;            // size of the Type Server Map substream
    ULONG       iMFC;               // index of MFC type server
    CB          cbDbgHdr;           // size of optional DbgHdr info appended to the end of the stream
    CB          cbECInfo;           // number of bytes in EC substream, or 0 if EC no EC enabled Mods
    USHORT      flags;
    USHORT      wMachine;           // machine type
    ULONG       rgulReserved[1];    // pad out to 64 bytes for future growth.
};

// Stream numbers of the optional debug header, -1 when absent
struct DbiDbgHeader {
    int16 snFPO;
    int16 snException;
    int16 snFixup;
    int16 snOmapToSrc;
    int16 snOmapFromSrc;
    int16 snSectionHdr;
    int16 snTokenRidMap;
    int16 snXdata;
    int16 snPdata;
    int16 snNewFPO;
    int16 snSectionHdrOrig;
};

struct IMAGE_SECTION_HEADER {
    char    Name[8];
    ULONG   VirtualSize;
    ULONG   VirtualAddress;
    ULONG   SizeOfRawData;
    ULONG   PointerToRawData;
    ULONG   PointerToRelocations;
    ULONG   PointerToLinenumbers;
    USHORT  NumberOfRelocations;
    USHORT  NumberOfLinenumbers;
    ULONG   Characteristics;
};

struct OMAP_DATA {
    ULONG   rva;
    ULONG   rvaTo;
};

/////////////////////////////////////////////////////////////////////////
// Symbol records
/////////////////////////////////////////////////////////////////////////

enum SYM_ENUM_e : uint16 {
    S_END           = 0x0006,
    S_OBJNAME       = 0x1101,
    S_LDATA32       = 0x110c,
    S_GDATA32       = 0x110d,
    S_PUB32         = 0x110e,
    S_LPROC32       = 0x110f,
    S_GPROC32       = 0x1110,
    S_COMPILE2      = 0x1116,
    S_LMANDATA      = 0x111c,
    S_GMANDATA      = 0x111d,
    S_PROCREF       = 0x1125,
    S_DATAREF       = 0x1126,
    S_LPROCREF      = 0x1127,
    S_COMPILE3      = 0x113c,
    S_LPROC32_ID    = 0x1146,
    S_GPROC32_ID    = 0x1147,
    S_BUILDINFO     = 0x114c,
    S_PROC_ID_END   = 0x114f,
    S_LPROC32_DPC   = 0x1155,
    S_LPROC32_DPC_ID = 0x1156,
};

struct SymbolRecordHeader {
    // Length of the symbol record in bytes, without this field. The length
    // including this field is always a multiple of 4.
    uint16_t length;
    uint16_t kind;
};

enum CVPSF : uint32 {
    CVPSF_CODE = 0x1,
    CVPSF_FUNCTION = 0x2,
    CVPSF_MANAGED = 0x4,
    CVPSF_MSIL = 0x8,
};

struct PublicSymbol {
    uint32 cvpsf_flags;     // CVPSF bits
    uint32 offset;          // The memory offset relative from the start of the section's memory.
    uint16 section;         // The index of the section in the PDB's section headers list, incremented by `1`.
    char name[];
};

struct DataSymbol {
    uint32 type_index;
    uint32 offset;
    uint16 section;
    char name[];
};

struct ProcedureSymbol {
    uint32 parent;
    uint32 end;
    uint32 next;
    uint32 length;
    uint32 debug_start_offset;
    uint32 debug_end_offset;
    uint32 type_index;
    uint32 offset;
    uint16 section;
    uint8 flags;            // CV_PROCFLAGS
    char name[];
};

struct BuildInfoSymbol {
    uint32 id;              // CV_ItemId of the LF_BUILDINFO record
};

struct CV_COMPILE_FLAGS {
    uint32 iLanguage        :8;     // language index
    uint32 fEC              :1;     // compiled for E/C
    uint32 fNoDbgInfo       :1;     // not compiled with debug info
    uint32 fLTCG            :1;     // compiled with LTCG
    uint32 fNoDataAlign     :1;     // compiled with -Bzalign
    uint32 fManagedPresent  :1;     // managed code/data present
    uint32 fSecurityChecks  :1;     // compiled with /GS
    uint32 fHotPatch        :1;     // compiled with /hotpatch
    uint32 fCVTCIL          :1;     // converted with CVTCIL
    uint32 fMSILModule      :1;     // MSIL netmodule
    uint32 fSdl             :1;     // compiled with /sdl, reserved zero in S_COMPILE2
    uint32 fPGO             :1;     // compiled with /ltcg:pgo or pgo:, reserved zero in S_COMPILE2
    uint32 fExp             :1;     // .exp module, reserved zero in S_COMPILE2
    uint32 pad              :12;    // reserved, must be 0
};

struct CV_VERSION2 {
    uint16 major;
    uint16 minor;
    uint16 build;
};

struct CV_VERSION3 {
    uint16 major;
    uint16 minor;
    uint16 build;
    uint16 qfe;
};

struct CompileSymbol2 {
    CV_COMPILE_FLAGS flags;
    uint16 machine;         // target processor
    CV_VERSION2 frontend;
    CV_VERSION2 backend;
    char version[];         // zero terminated compiler version string
};

struct CompileSymbol3 {
    CV_COMPILE_FLAGS flags;
    uint16 machine;         // target processor
    CV_VERSION3 frontend;
    CV_VERSION3 backend;
    char version[];         // zero terminated compiler version string
};

/////////////////////////////////////////////////////////////////////////
// Module stream line information (C13)
/////////////////////////////////////////////////////////////////////////

enum DEBUG_S_SUBSECTION_TYPE : uint32 {
    DEBUG_S_IGNORE = 0x80000000,
    DEBUG_S_SYMBOLS = 0xf1,
    DEBUG_S_LINES = 0xf2,
    DEBUG_S_STRINGTABLE = 0xf3,
    DEBUG_S_FILECHKSMS = 0xf4,
    DEBUG_S_FRAMEDATA = 0xf5,
    DEBUG_S_INLINEELINES = 0xf6,
    DEBUG_S_CROSSSCOPEIMPORTS = 0xf7,
    DEBUG_S_CROSSSCOPEEXPORTS = 0xf8,
};

struct DebugSubsectionHeader {
    uint32 kind;
    uint32 length;
};

enum CV_SourceChksum_t : uint8 {
    CHKSUM_TYPE_NONE = 0,
    CHKSUM_TYPE_MD5 = 1,
    CHKSUM_TYPE_SHA1 = 2,
    CHKSUM_TYPE_SHA_256 = 3,
};

struct FileChecksumEntry {
    uint32 name_offset;     // offset of the file name in the /names string table
    uint8 checksum_size;
    uint8 checksum_kind;
    char checksum[checksum_size];
};
"""


c_pdb = cstruct()
c_pdb.load(pdb_def)


NAME_TABLE_MAGIC = 0xEFFEEFFE

# Fixed stream indices within a PDB
PDB_STREAM = 1
TPI_STREAM = 2
DBI_STREAM = 3
IPI_STREAM = 4

# Type indices below this value are primitive types encoded in the index itself
TI_FIRST_NONPRIMITIVE = 0x1000

# Feature signatures that follow the named stream map in the PDB info stream, both imply an IPI stream
PDB_FEATURE_VC110 = 20091201
PDB_FEATURE_VC140 = 20140508

# CV_CFL_LANG
LANGUAGES = {
    0x00: "C",
    0x01: "Cpp",
    0x02: "Fortran",
    0x03: "Masm",
    0x04: "Pascal",
    0x05: "Basic",
    0x06: "Cobol",
    0x07: "Link",
    0x08: "Cvtres",
    0x09: "Cvtpgd",
    0x0A: "CSharp",
    0x0B: "VB",
    0x0C: "ILAsm",
    0x0D: "Java",
    0x0E: "JScript",
    0x0F: "MSIL",
    0x10: "HLSL",
    0x11: "ObjC",
    0x12: "ObjCpp",
    0x13: "Swift",
    0x14: "AliasObj",
    0x15: "Rust",
    0x16: "Go",
}

# CV_CPU_TYPE_e
CPU_TYPES = {
    0x00: "Intel8080",
    0x01: "Intel8086",
    0x02: "Intel80286",
    0x03: "Intel80386",
    0x04: "Intel80486",
    0x05: "Pentium",
    0x06: "PentiumPro",
    0x07: "Pentium3",
    0x10: "MIPS",
    0x11: "MIPS16",
    0x12: "MIPS32",
    0x13: "MIPS64",
    0x14: "MIPSI",
    0x15: "MIPSII",
    0x16: "MIPSIII",
    0x17: "MIPSIV",
    0x18: "MIPSV",
    0x20: "M68000",
    0x21: "M68010",
    0x22: "M68020",
    0x23: "M68030",
    0x24: "M68040",
    0x30: "Alpha",
    0x31: "Alpha21164",
    0x32: "Alpha21164A",
    0x33: "Alpha21264",
    0x34: "Alpha21364",
    0x40: "PPC601",
    0x41: "PPC603",
    0x42: "PPC604",
    0x43: "PPC620",
    0x44: "PPCFP",
    0x45: "PPCBE",
    0x50: "SH3",
    0x51: "SH3E",
    0x52: "SH3DSP",
    0x53: "SH4",
    0x54: "SHMedia",
    0x60: "ARM3",
    0x61: "ARM4",
    0x62: "ARM4T",
    0x63: "ARM5",
    0x64: "ARM5T",
    0x65: "ARM6",
    0x66: "ARM_XMAC",
    0x67: "ARM_WMMX",
    0x68: "ARM7",
    0x70: "Omni",
    0x80: "Ia64",
    0x81: "Ia64_2",
    0x90: "CEE",
    0xA0: "AM33",
    0xB0: "M32R",
    0xC0: "TriCore",
    0xD0: "X64",
    0xE0: "EBC",
    0xF0: "Thumb",
    0xF4: "ARMNT",
    0xF6: "ARM64",
    0xF7: "HybridX86ARM64",
    0xF8: "ARM64EC",
    0xF9: "ARM64X",
    0x100: "D3D11_Shader",
}

# Primitive type names and sizes in bytes, keyed by the low byte of a primitive type index
PRIMITIVE_TYPES = {
    0x00: ("<no type>", 0),
    0x03: ("void", 0),
    0x07: ("<not translated>", 0),
    0x08: ("HRESULT", 4),
    0x10: ("signed char", 1),
    0x11: ("short", 2),
    0x12: ("long", 4),
    0x13: ("__int64", 8),
    0x14: ("__int128", 16),
    0x20: ("unsigned char", 1),
    0x21: ("unsigned short", 2),
    0x22: ("unsigned long", 4),
    0x23: ("unsigned __int64", 8),
    0x24: ("unsigned __int128", 16),
    0x30: ("bool", 1),
    0x31: ("bool16", 2),
    0x32: ("bool32", 4),
    0x33: ("bool64", 8),
    0x40: ("float", 4),
    0x41: ("double", 8),
    0x42: ("long double", 10),
    0x43: ("__float128", 16),
    0x44: ("__float48", 6),
    0x45: ("float", 4),
    0x46: ("__float16", 2),
    0x68: ("int8_t", 1),
    0x69: ("uint8_t", 1),
    0x70: ("char", 1),
    0x71: ("wchar_t", 2),
    0x72: ("int16_t", 2),
    0x73: ("uint16_t", 2),
    0x74: ("int", 4),
    0x75: ("unsigned int", 4),
    0x76: ("int64_t", 8),
    0x77: ("uint64_t", 8),
    0x78: ("int128_t", 16),
    0x79: ("uint128_t", 16),
    0x7A: ("char16_t", 2),
    0x7B: ("char32_t", 4),
    0x7C: ("char8_t", 1),
}

# Size in bytes of the pointer described by bits 8-11 of a primitive type index
PRIMITIVE_POINTER_SIZES = {
    0x1: 2,  # near
    0x2: 4,  # far
    0x3: 4,  # huge
    0x4: 4,  # 32-bit
    0x5: 6,  # 16:32
    0x6: 8,  # 64-bit
    0x7: 16,  # 128-bit
}

# Numeric leaves encode a value that follows the leaf as one of these types
NUMERIC_LEAVES = {
    0x8000: c_pdb.int8,  # LF_CHAR
    0x8001: c_pdb.int16,  # LF_SHORT
    0x8002: c_pdb.uint16,  # LF_USHORT
    0x8003: c_pdb.int32,  # LF_LONG
    0x8004: c_pdb.uint32,  # LF_ULONG
    0x8009: c_pdb.int64,  # LF_QUADWORD
    0x800A: c_pdb.uint64,  # LF_UQUADWORD
}


PDB2_SIGNATURE = b"Microsoft C/C++ program database 2.00\r\n\x1aJG\x00\x00"
PDB7_SIGNATURE = b"Microsoft C/C++ MSF 7.00\r\n\x1ADS\x00\x00\x00"
